import logging
import numbers
from decimal import Decimal, InvalidOperation

from .Errors import RequestValidationError

logger = logging.getLogger(__name__)


def _get(d: dict, snake: str, camel: str, default=None):
    return d.get(snake, d.get(camel, default))


##########################################################################################
class ContestRequest:
    '''
    A request about one contest, identified by name, with the candidates the caller expects and
    the size of the audit universe.
    '''

    def __init__(self, contest_name: str=None, total_auditable_ballots: int=None,
                 candidates: list=None):
        self.contest_name = contest_name
        self.total_auditable_ballots = total_auditable_ballots
        self.candidates = candidates

    def __str__(self):
        return str(self.__dict__)

    def _fail(self, msg: str):
        logger.error('%s Request: %s', msg, self)
        raise RequestValidationError(msg)

    def validate(self, contest_repository=None):
        '''
        Check the request; complain if it is invalid.

        Parameters
        ----------
        contest_repository: ContestRepository
            if given, the contest must exist and all its parts must be IRV contests

        Side effects
        ------------
        raises RequestValidationError if a check fails
        '''
        if not isinstance(self.contest_name, str) or not self.contest_name.strip():
            self._fail('No contest name.')
        if not self.candidates or isinstance(self.candidates, str) \
                or any(not isinstance(c, str) or not c.strip() for c in self.candidates):
            self._fail(f'Bad candidate list for contest {self.contest_name}.')
        if len({' '.join(c.split()).upper() for c in self.candidates}) != len(self.candidates):
            self._fail(f'Duplicate candidates in the candidate list for contest '
                       f'{self.contest_name}.')
        if isinstance(self.total_auditable_ballots, bool) \
                or not isinstance(self.total_auditable_ballots, numbers.Integral) \
                or self.total_auditable_ballots <= 0:
            self._fail('Non-positive total auditable ballots.')
        if contest_repository is not None:
            if not contest_repository.find_by_name(self.contest_name):
                self._fail(f'No such contest: {self.contest_name}')
            if not contest_repository.is_all_irv(self.contest_name):
                self._fail(f'Not all IRV: {self.contest_name}')


class GenerateAssertionsRequest(ContestRequest):
    '''
    request to generate assertions for a contest, allowing `time_limit_seconds` for the search
    '''

    def __init__(self, contest_name: str=None, total_auditable_ballots: int=None,
                 candidates: list=None, time_limit_seconds: float=None):
        super().__init__(contest_name, total_auditable_ballots, candidates)
        self.time_limit_seconds = time_limit_seconds

    def validate(self, contest_repository=None):
        super().validate(contest_repository)
        if isinstance(self.time_limit_seconds, bool) \
                or not isinstance(self.time_limit_seconds, numbers.Real) \
                or not self.time_limit_seconds > 0:
            self._fail('Non-positive time provision for result.')

    @classmethod
    def from_dict(cls, d: dict) -> 'GenerateAssertionsRequest':
        '''
        build from the JSON form; camelCase keys are accepted as well as snake_case
        '''
        return cls(contest_name=_get(d, 'contest_name', 'contestName'),
                   total_auditable_ballots=_get(d, 'total_auditable_ballots',
                                                'totalAuditableBallots'),
                   candidates=d.get('candidates'),
                   time_limit_seconds=_get(d, 'time_limit_seconds', 'timeLimitSeconds'))


class GetAssertionsRequest(ContestRequest):
    '''
    request to retrieve the stored assertions for a contest, for an audit with `risk_limit`
    '''

    def __init__(self, contest_name: str=None, total_auditable_ballots: int=None,
                 candidates: list=None, risk_limit: Decimal=None):
        super().__init__(contest_name, total_auditable_ballots, candidates)
        self.risk_limit = risk_limit

    def validate(self, contest_repository=None):
        super().validate(contest_repository)
        # risk limits above 1 are vacuous and a risk limit of 0 is unattainable; neither is an error
        if self.risk_limit is None or isinstance(self.risk_limit, bool):
            self._fail('Null or negative risk limit.')
        try:
            risk_limit = Decimal(str(self.risk_limit))
        except InvalidOperation:
            self._fail(f'Risk limit {self.risk_limit!r} is not a number.')
        if not risk_limit.is_finite() or risk_limit < 0:
            self._fail('Null or negative risk limit.')
        self.risk_limit = risk_limit

    @classmethod
    def from_dict(cls, d: dict) -> 'GetAssertionsRequest':
        '''
        build from the JSON form; camelCase keys are accepted as well as snake_case
        '''
        return cls(contest_name=_get(d, 'contest_name', 'contestName'),
                   total_auditable_ballots=_get(d, 'total_auditable_ballots',
                                                'totalAuditableBallots'),
                   candidates=d.get('candidates'),
                   risk_limit=_get(d, 'risk_limit', 'riskLimit'))
