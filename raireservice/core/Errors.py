"""
Error kinds raised by ballot consolidation, assertion construction and conversion, and
the assertion-generation algorithm.
"""

##########################################################################################
class RaireErrorCode:
    '''
    error codes describing what went wrong, for a caller to translate into a message for the user
    '''
    ERROR_CODES = (
                   # errors the user can do something about
                   TIED_WINNERS:= 'TIED_WINNERS',
                   INVALID_TOTAL_AUDITABLE_BALLOTS:= 'INVALID_TOTAL_AUDITABLE_BALLOTS',
                   TIMEOUT_CHECKING_WINNER:= 'TIMEOUT_CHECKING_WINNER',
                   TIMEOUT_FINDING_ASSERTIONS:= 'TIMEOUT_FINDING_ASSERTIONS',
                   TIMEOUT_TRIMMING_ASSERTIONS:= 'TIMEOUT_TRIMMING_ASSERTIONS',
                   COULD_NOT_RULE_OUT_ALTERNATIVE:= 'COULD_NOT_RULE_OUT_ALTERNATIVE',
                   WRONG_CANDIDATE_NAMES:= 'WRONG_CANDIDATE_NAMES',
                   NO_ASSERTIONS_PRESENT:= 'NO_ASSERTIONS_PRESENT',
                   NO_VOTES_PRESENT:= 'NO_VOTES_PRESENT',
                   INVALID_REQUEST:= 'INVALID_REQUEST',
                   # internal errors the user can do nothing about
                   INTERNAL_ERROR:= 'INTERNAL_ERROR'
                  )

    CLIENT_ERRORS = (TIED_WINNERS, INVALID_TOTAL_AUDITABLE_BALLOTS, TIMEOUT_CHECKING_WINNER,
                     TIMEOUT_FINDING_ASSERTIONS, TIMEOUT_TRIMMING_ASSERTIONS,
                     COULD_NOT_RULE_OUT_ALTERNATIVE, WRONG_CANDIDATE_NAMES, NO_ASSERTIONS_PRESENT,
                     NO_VOTES_PRESENT, INVALID_REQUEST)

    @classmethod
    def is_client_error(cls, code: str) -> bool:
        '''
        is the error one the user can act on (as opposed to an internal fault)?
        '''
        if code not in cls.ERROR_CODES:
            raise ValueError(f'unknown error code {code}')
        return code in cls.CLIENT_ERRORS


##########################################################################################
class RaireServiceError(Exception):
    '''
    assertion generation or retrieval failed. Carries an error code from RaireErrorCode.
    '''
    ERROR_CODE_KEY = 'error_code'

    def __init__(self, message: str, error_code: str=RaireErrorCode.INTERNAL_ERROR):
        super().__init__(message)
        if error_code not in RaireErrorCode.ERROR_CODES:
            raise ValueError(f'unknown error code {error_code}')
        self.error_code = error_code

    @property
    def message(self) -> str:
        return self.args[0] if self.args else ''

    @classmethod
    def from_raire_error(cls, error: 'RaireError', candidates: list) -> 'RaireServiceError':
        '''
        translate an error from the assertion-generation algorithm into a RaireServiceError

        Parameters
        ----------
        error: RaireError
            the error returned by the algorithm
        candidates: list
            candidate names, in the order the algorithm was given them; used to name tied winners
            and elimination orders

        Returns
        -------
        RaireServiceError with the matching error code and a human-readable message
        '''
        for kind, (code, describe) in _RAIRE_ERROR_TRANSLATIONS.items():
            if type(error) is kind:
                return cls(describe(error, candidates), code)
        raise TypeError(f'unrecognised assertion-generation error {type(error).__name__}')


class RequestValidationError(RaireServiceError):
    '''
    a request to generate or retrieve assertions is invalid
    '''
    def __init__(self, message: str):
        super().__init__(message, RaireErrorCode.INVALID_REQUEST)


class ConcurrentModificationError(RaireServiceError):
    '''
    the stored assertions for a contest changed since the caller read them
    '''
    def __init__(self, message: str):
        super().__init__(message, RaireErrorCode.INTERNAL_ERROR)


##########################################################################################
class MalformedBallot(ValueError):
    '''
    a single raw ballot could not be parsed. Recovered locally: the ballot is dropped and counted.
    '''
    def __init__(self, cvr_id: object, choices: str, reason: str):
        super().__init__(f'malformed ballot (CVR {cvr_id}): {reason}. Choices: {choices!r}')
        self.cvr_id = cvr_id
        self.choices = choices
        self.reason = reason


class InvalidAssertion(ValueError):
    '''
    an assertion violates a construction-time invariant
    '''


class CandidateReferenceError(RaireServiceError, LookupError):
    '''
    a candidate name or index is absent from the current candidate ordering
    '''
    def __init__(self, message: str):
        super().__init__(message, RaireErrorCode.WRONG_CANDIDATE_NAMES)


class WrongCandidateNames(CandidateReferenceError):
    '''
    vote data refers to a candidate that is not in the expected candidate list
    '''


class InvalidRisk(ValueError):
    '''
    a risk measurement outside (0, 1]
    '''


##########################################################################################
class RaireError(Exception):
    '''
    errors produced by the assertion-generation algorithm. Each kind carries only its own data.
    '''


class TiedWinners(RaireError):
    def __init__(self, expected: list):
        super().__init__(f'tied winners {expected}')
        self.expected = list(expected)


class TimeoutFindingAssertions(RaireError):
    def __init__(self, difficulty_at_stop: float):
        super().__init__(f'time out finding assertions, difficulty at stop {difficulty_at_stop}')
        self.difficulty_at_stop = difficulty_at_stop


class TimeoutTrimmingAssertions(RaireError):
    pass


class TimeoutCheckingWinner(RaireError):
    pass


class CouldNotRuleOut(RaireError):
    def __init__(self, elimination_order: list):
        super().__init__(f'could not rule out elimination order {elimination_order}')
        self.elimination_order = list(elimination_order)


class InvalidNumberOfCandidates(RaireError):
    pass


class InvalidCandidateNumber(RaireError):
    pass


class InvalidTimeout(RaireError):
    pass


class WrongWinner(RaireError):
    def __init__(self, expected: list):
        super().__init__(f'wrong winner; possible winners {expected}')
        self.expected = list(expected)


class InternalErrorDidntRuleOutLoser(RaireError):
    pass


class InternalErrorRuledOutWinner(RaireError):
    pass


class InternalErrorTrimming(RaireError):
    pass


def _names(indices, candidates):
    return ', '.join(candidates[i] if 0 <= i < len(candidates) else str(i) for i in indices)


_RAIRE_ERROR_TRANSLATIONS = {
    TiedWinners: (RaireErrorCode.TIED_WINNERS,
                  lambda e, c: f'Tied winners: {_names(e.expected, c)}.'),
    TimeoutFindingAssertions: (RaireErrorCode.TIMEOUT_FINDING_ASSERTIONS,
                  lambda e, c: 'Time out finding assertions - try again with longer timeout.'),
    TimeoutTrimmingAssertions: (RaireErrorCode.TIMEOUT_TRIMMING_ASSERTIONS,
                  lambda e, c: 'Time out trimming assertions - the assertions are usable, but '
                               'could be reduced given more trimming time.'),
    TimeoutCheckingWinner: (RaireErrorCode.TIMEOUT_CHECKING_WINNER,
                  lambda e, c: 'Time out checking winner - the election is either tied or '
                               'extremely complex.'),
    CouldNotRuleOut: (RaireErrorCode.COULD_NOT_RULE_OUT_ALTERNATIVE,
                  lambda e, c: 'Could not rule out alternative elimination order: '
                               f'{_names(e.elimination_order, c)}.'),
    # right number of candidates but wrong names versus the vote data
    InvalidCandidateNumber: (RaireErrorCode.WRONG_CANDIDATE_NAMES,
                  lambda e, c: 'Candidate list does not match database.'),
    InvalidTimeout: (RaireErrorCode.INTERNAL_ERROR, lambda e, c: 'Internal error'),
    InvalidNumberOfCandidates: (RaireErrorCode.INTERNAL_ERROR, lambda e, c: 'Internal error'),
    WrongWinner: (RaireErrorCode.INTERNAL_ERROR, lambda e, c: 'Internal error'),
    InternalErrorDidntRuleOutLoser: (RaireErrorCode.INTERNAL_ERROR, lambda e, c: 'Internal error'),
    InternalErrorRuledOutWinner: (RaireErrorCode.INTERNAL_ERROR, lambda e, c: 'Internal error'),
    InternalErrorTrimming: (RaireErrorCode.INTERNAL_ERROR, lambda e, c: 'Internal error'),
}
