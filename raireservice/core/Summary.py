import logging
import numbers

from .Errors import RaireErrorCode, RaireServiceError

logger = logging.getLogger(__name__)


##########################################################################################
class GenerateAssertionsSummary:
    '''
    Outcome of the latest assertion-generation run for one contest.

    A successful run records the winner, possibly with a warning (e.g. trimming timed out);
    a failed run records an error code and message. After an update exactly one of `winner` and
    `error` is non-blank. A summary that has never been updated holds neither.
    '''

    UNKNOWN_WINNER = 'Unknown'

    def __init__(self, contest_name: str):
        if not isinstance(contest_name, str) or not contest_name.strip():
            msg = f'summary requires a non-blank contest name, got {contest_name!r}'
            logger.error(msg)
            raise RaireServiceError(msg, RaireErrorCode.INTERNAL_ERROR)
        self.contest_name = contest_name
        self.winner = ''
        self.error = ''
        self.warning = ''
        self.message = ''
        self.version = 0

    def __str__(self):
        return (f'contest: {self.contest_name} winner: {self.winner} error: {self.error} '
                f'warning: {self.warning} message: {self.message}')

    @property
    def is_empty(self) -> bool:
        return not self.winner and not self.error

    @property
    def succeeded(self) -> bool:
        return bool(self.winner)

    def update_error(self, error: str, message: str=''):
        '''
        record a failed run: `error` is an error code, `message` explains it
        '''
        if not isinstance(error, str) or not error.strip():
            msg = f'summary for {self.contest_name} updated with a blank error'
            logger.error(msg)
            raise RaireServiceError(msg, RaireErrorCode.INTERNAL_ERROR)
        self.winner = ''
        self.warning = ''
        self.error = error
        self.message = message or ''
        self.version += 1
        self._check_invariant()

    def update_winner(self, candidates: list, winner_index: int, trim_timed_out: bool=False):
        '''
        record a successful run whose winner is candidates[winner_index]
        '''
        if isinstance(winner_index, bool) or not isinstance(winner_index, numbers.Integral) \
                or not 0 <= winner_index < len(candidates):
            msg = (f'winner index {winner_index!r} is outside the candidate list {list(candidates)} '
                   f'for {self.contest_name}')
            logger.error(msg)
            raise RaireServiceError(msg, RaireErrorCode.INTERNAL_ERROR)
        self.winner = candidates[int(winner_index)]
        self.error = ''
        self.message = ''
        self.warning = RaireErrorCode.TIMEOUT_TRIMMING_ASSERTIONS if trim_timed_out else ''
        self.version += 1
        self._check_invariant()

    def _check_invariant(self):
        if bool(self.winner.strip()) == bool(self.error.strip()):
            msg = f'summary for {self.contest_name} must have exactly one of a winner and an error'
            logger.error(msg)
            raise RaireServiceError(msg, RaireErrorCode.INTERNAL_ERROR)

    def equal_data(self, contest_name: str, winner: str, error: str, warning: str,
                   message_substring: str='') -> bool:
        '''
        do the fields match the given values, with the message containing message_substring?
        Used by tests.
        '''
        return (self.contest_name, self.winner, self.error, self.warning) == \
               (contest_name, winner, error, warning) and message_substring in self.message

    def to_dict(self) -> dict:
        return {'contest_name': self.contest_name,
                'winner': self.winner,
                'error': self.error,
                'warning': self.warning,
                'message': self.message}
