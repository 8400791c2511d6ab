"""
Audit assertions for IRV contests, as stored and reported by the service.

An assertion is an immutable core (who is compared with whom, in which contest, with what margin
and difficulty) plus an AuditProgress value holding the evidence collected so far. Assertions
refer to candidates by name; the assertion-generation algorithm refers to them by index, and
`to_indexed` / `from_indexed` convert between the two.
"""

import logging
import math
import numbers
from decimal import Decimal, InvalidOperation

from .Candidates import CandidateRegistry
from .Errors import InvalidAssertion, InvalidRisk
from ..raire.raire_utils import AssertionAndDifficulty, NotEliminatedBefore, NotEliminatedNext

logger = logging.getLogger(__name__)


##########################################################################################
class AuditProgress:
    '''
    Evidence collected for one assertion during an audit: the discrepancy found on each audited
    CVR, counts of each kind of discrepancy, the current risk, and estimated sample sizes.

    The per-CVR map is authoritative; the five counters always agree with it.
    '''

    DISCREPANCY_VALUES = (TWO_VOTE_UNDER:= -2,
                          ONE_VOTE_UNDER:= -1,
                          OTHER:= 0,
                          ONE_VOTE_OVER:= 1,
                          TWO_VOTE_OVER:= 2
                         )

    INITIAL_RISK = Decimal('1.00')

    def __init__(self):
        self._discrepancies = {}
        self._counts = {v: 0 for v in self.DISCREPANCY_VALUES}
        self._current_risk = self.INITIAL_RISK
        self._optimistic_samples_to_audit = 0
        self._estimated_samples_to_audit = 0

    def __str__(self):
        return (f'discrepancies: {self._discrepancies} current risk: {self._current_risk} '
                f'optimistic samples: {self._optimistic_samples_to_audit} '
                f'estimated samples: {self._estimated_samples_to_audit}')

    def record_discrepancy(self, cvr_id, value: int):
        '''
        Record the discrepancy found on a CVR, replacing any value recorded for it before.

        Parameters
        ----------
        cvr_id: hashable
            the CVR
        value: int
            -2 (two-vote understatement), -1 (one-vote understatement), 0 (other),
            1 (one-vote overstatement) or 2 (two-vote overstatement)
        '''
        if isinstance(value, bool) or not isinstance(value, numbers.Integral) \
                or value not in self.DISCREPANCY_VALUES:
            raise ValueError(f'discrepancy {value!r} for CVR {cvr_id} is not one of '
                             f'{self.DISCREPANCY_VALUES}')
        if cvr_id is None:
            raise ValueError('discrepancy recorded without a CVR id')
        value = int(value)
        previous = self._discrepancies.get(cvr_id)
        if previous is not None:
            self._counts[previous] -= 1
        self._discrepancies[cvr_id] = value
        self._counts[value] += 1

    def remove_discrepancy(self, cvr_id):
        '''
        withdraw the discrepancy recorded for a CVR; KeyError if there is none
        '''
        previous = self._discrepancies.pop(cvr_id)
        self._counts[previous] -= 1

    def set_risk(self, value):
        '''
        set the current risk; must be in (0, 1]. Stored as a Decimal.
        '''
        try:
            risk = value if isinstance(value, Decimal) else Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise InvalidRisk(f'risk {value!r} is not a number') from None
        if not risk.is_finite() or not (0 < risk <= 1):
            raise InvalidRisk(f'risk {value!r} is outside (0, 1]')
        self._current_risk = risk

    def set_sample_estimates(self, optimistic: int, estimated: int):
        for v in (optimistic, estimated):
            if isinstance(v, bool) or not isinstance(v, numbers.Integral) or v < 0:
                raise ValueError(f'sample size estimate {v!r} must be a non-negative integer')
        self._optimistic_samples_to_audit = int(optimistic)
        self._estimated_samples_to_audit = int(estimated)

    @property
    def discrepancies(self) -> dict:
        return dict(self._discrepancies)

    @property
    def current_risk(self) -> Decimal:
        return self._current_risk

    @property
    def optimistic_samples_to_audit(self) -> int:
        return self._optimistic_samples_to_audit

    @property
    def estimated_samples_to_audit(self) -> int:
        return self._estimated_samples_to_audit

    @property
    def two_vote_over_count(self) -> int:
        return self._counts[self.TWO_VOTE_OVER]

    @property
    def one_vote_over_count(self) -> int:
        return self._counts[self.ONE_VOTE_OVER]

    @property
    def other_count(self) -> int:
        return self._counts[self.OTHER]

    @property
    def one_vote_under_count(self) -> int:
        return self._counts[self.ONE_VOTE_UNDER]

    @property
    def two_vote_under_count(self) -> int:
        return self._counts[self.TWO_VOTE_UNDER]


##########################################################################################
class Assertion:
    '''
    Objects and methods for assertions about an IRV contest outcome.

    NEB ("not eliminated before"): `winner` cannot be eliminated before `loser`.
    NEN ("not eliminated next"): when only the candidates in `assumed_continuing` remain, `winner`
    is not the next to be eliminated, because `loser` has fewer votes.

    Use `Assertion.make` or the NEBAssertion and NENAssertion constructors. The core fields are
    read-only; audit evidence is recorded through `progress`.
    '''

    class ASSERTION_TYPE:
        '''
        kinds of assertion
        '''
        ASSERTION_TYPES = (NEB:= 'NEB',
                           NEN:= 'NEN'
                          )

    def __init__(self, contest_name: str, winner: str, loser: str, margin: int,
                 universe_size: int, difficulty: float=0.0):
        if type(self) is Assertion:
            raise InvalidAssertion('Assertion is abstract: build an NEBAssertion or NENAssertion')
        for field, name in (('contest name', contest_name), ('winner', winner), ('loser', loser)):
            if not isinstance(name, str) or not name.strip():
                raise InvalidAssertion(f'{field} must be a non-blank string, got {name!r}')
        if winner == loser:
            raise InvalidAssertion(f'winner and loser are both {winner}')
        if isinstance(universe_size, bool) or not isinstance(universe_size, numbers.Integral) \
                or universe_size <= 0:
            raise InvalidAssertion(f'universe size {universe_size!r} must be a positive integer')
        if isinstance(margin, bool) or not isinstance(margin, numbers.Integral) \
                or margin < 0 or margin > universe_size:
            raise InvalidAssertion(f'margin {margin!r} must be an integer between 0 and the '
                                   f'universe size {universe_size}')
        try:
            difficulty = float(difficulty)
        except (TypeError, ValueError):
            raise InvalidAssertion(f'difficulty {difficulty!r} is not a number') from None
        if math.isnan(difficulty) or difficulty < 0:
            raise InvalidAssertion(f'difficulty {difficulty} must be non-negative')

        self._contest_name = contest_name
        self._winner = winner
        self._loser = loser
        self._margin = int(margin)
        self._universe_size = int(universe_size)
        self._difficulty = difficulty
        self._diluted_margin = self._margin/self._universe_size
        self.progress = AuditProgress()

    def __str__(self):
        return (f'contest: {self._contest_name} type: {self.assertion_type} '
                f'winner: {self._winner} loser: {self._loser} '
                f'assumed continuing: {list(self.assumed_continuing)} '
                f'margin: {self._margin} diluted margin: {self._diluted_margin} '
                f'difficulty: {self._difficulty} current risk: {self.progress.current_risk}')

    @property
    def assertion_type(self) -> str:
        raise NotImplementedError('assertion_type is defined by each kind of assertion')

    @property
    def assumed_continuing(self) -> tuple:
        raise NotImplementedError('assumed_continuing is defined by each kind of assertion')

    @property
    def contest_name(self) -> str:
        return self._contest_name

    @property
    def winner(self) -> str:
        return self._winner

    @property
    def loser(self) -> str:
        return self._loser

    @property
    def margin(self) -> int:
        return self._margin

    @property
    def universe_size(self) -> int:
        return self._universe_size

    @property
    def difficulty(self) -> float:
        return self._difficulty

    @property
    def diluted_margin(self) -> float:
        return self._diluted_margin

    @property
    def current_risk(self) -> Decimal:
        return self.progress.current_risk

    def same_as(self, other) -> bool:
        '''
        do the two assertions have the same core fields? Audit progress is not compared.
        '''
        return isinstance(other, Assertion) \
            and self.assertion_type == other.assertion_type \
            and self._contest_name == other.contest_name \
            and self._winner == other.winner \
            and self._loser == other.loser \
            and set(self.assumed_continuing) == set(other.assumed_continuing) \
            and self._margin == other.margin \
            and self._universe_size == other.universe_size \
            and self._difficulty == other.difficulty

    def description(self) -> str:
        raise NotImplementedError('description is defined by each kind of assertion')

    def _indexed(self, reg: CandidateRegistry):
        raise NotImplementedError('_indexed is defined by each kind of assertion')

    def to_indexed(self, candidates) -> AssertionAndDifficulty:
        '''
        The assertion in the algorithm's form, with candidates given by their index in
        `candidates`.

        Parameters
        ----------
        candidates: list or CandidateRegistry
            the current candidate ordering for the contest

        Returns
        -------
        AssertionAndDifficulty, whose status records the current risk

        Raises
        ------
        CandidateReferenceError if the winner, loser or an assumed-continuing candidate is not
        in `candidates`
        '''
        reg = CandidateRegistry.coerce(candidates)
        indexed = self._indexed(reg)
        logger.debug('converted %s to %s', self.description(), indexed.to_dict())
        return AssertionAndDifficulty(indexed, self._difficulty, self._margin,
                                      status={'risk': self.progress.current_risk})

    def as_dict(self) -> dict:
        '''
        the assertion as a flat dict in the fixed order used for reports
        '''
        p = self.progress
        return {'type': self.assertion_type,
                'winner': self._winner,
                'loser': self._loser,
                'assumed_continuing': ','.join(self.assumed_continuing),
                'difficulty': round(self._difficulty, 4),
                'margin': self._margin,
                'diluted_margin': round(self._diluted_margin, 4),
                'current_risk': str(p.current_risk),
                'estimated_samples_to_audit': p.estimated_samples_to_audit,
                'optimistic_samples_to_audit': p.optimistic_samples_to_audit,
                'two_vote_over_count': p.two_vote_over_count,
                'one_vote_over_count': p.one_vote_over_count,
                'other_count': p.other_count,
                'one_vote_under_count': p.one_vote_under_count,
                'two_vote_under_count': p.two_vote_under_count
               }

    @classmethod
    def make(cls, assertion_type: str, contest_name: str, winner: str, loser: str, margin: int,
             universe_size: int, difficulty: float=0.0, assumed_continuing: list=None) \
             -> 'Assertion':
        '''
        Build an assertion of the given type.

        Parameters
        ----------
        assertion_type: str
            one of Assertion.ASSERTION_TYPE.ASSERTION_TYPES
        contest_name, winner, loser: str
            non-blank; winner and loser must differ
        margin: int
            between 0 and universe_size
        universe_size: int
            positive
        difficulty: float
            non-negative
        assumed_continuing: list
            NEN only: candidates still standing, including winner and loser

        Returns
        -------
        NEBAssertion or NENAssertion

        Raises
        ------
        InvalidAssertion
        '''
        if assertion_type == Assertion.ASSERTION_TYPE.NEB:
            if assumed_continuing:
                raise InvalidAssertion(f'NEB assertion given assumed continuing candidates '
                                       f'{list(assumed_continuing)}')
            return NEBAssertion(contest_name, winner, loser, margin, universe_size, difficulty)
        if assertion_type == Assertion.ASSERTION_TYPE.NEN:
            return NENAssertion(contest_name, winner, loser, margin, universe_size, difficulty,
                                assumed_continuing)
        raise InvalidAssertion(f'unknown assertion type {assertion_type!r}')

    @classmethod
    def from_indexed(cls, indexed, candidates, contest_name: str, universe_size: int,
                     margin: int=None, difficulty: float=None) -> 'Assertion':
        '''
        Build an assertion from the algorithm's form.

        Parameters
        ----------
        indexed: AssertionAndDifficulty, NotEliminatedBefore or NotEliminatedNext
            the assertion; for a bare NotEliminatedBefore/NotEliminatedNext, `margin` and
            `difficulty` default to the values held by the assertion itself
        candidates: list or CandidateRegistry
            the candidate ordering the indices refer to
        contest_name: str
        universe_size: int

        Raises
        ------
        CandidateReferenceError if an index is outside `candidates`
        InvalidAssertion if the result would violate an assertion invariant
        '''
        reg = CandidateRegistry.coerce(candidates)
        if isinstance(indexed, AssertionAndDifficulty):
            raw = indexed.assertion
            margin = indexed.margin if margin is None else margin
            difficulty = indexed.difficulty if difficulty is None else difficulty
        else:
            raw = indexed
            margin = raw.margin if margin is None else margin
            difficulty = raw.difficulty if difficulty is None else difficulty
        winner = reg.name_of(raw.winner)
        loser = reg.name_of(raw.loser)
        if type(raw) is NotEliminatedBefore:
            return NEBAssertion(contest_name, winner, loser, margin, universe_size, difficulty)
        if type(raw) is NotEliminatedNext:
            continuing = [reg.name_of(c) for c in raw.continuing]
            return NENAssertion(contest_name, winner, loser, margin, universe_size, difficulty,
                                continuing)
        raise InvalidAssertion(f'unknown assertion kind {type(raw).__name__}')


class NEBAssertion(Assertion):
    '''
    `winner` cannot be eliminated before `loser`. Has no assumed-continuing candidates.
    '''

    @property
    def assertion_type(self) -> str:
        return Assertion.ASSERTION_TYPE.NEB

    @property
    def assumed_continuing(self) -> tuple:
        return ()

    def description(self) -> str:
        return f'{self._winner} NEB {self._loser}'

    def _indexed(self, reg):
        return NotEliminatedBefore(reg.index_of(self._winner), reg.index_of(self._loser))


class NENAssertion(Assertion):
    '''
    `winner` is not eliminated next when exactly the candidates in `assumed_continuing` remain.
    '''

    def __init__(self, contest_name: str, winner: str, loser: str, margin: int,
                 universe_size: int, difficulty: float=0.0, assumed_continuing: list=None):
        if assumed_continuing is None or isinstance(assumed_continuing, str) \
                or len(assumed_continuing) == 0:
            raise InvalidAssertion(f'NEN assertion needs a list of assumed continuing '
                                   f'candidates, got {assumed_continuing!r}')
        continuing = tuple(assumed_continuing)
        if len(set(continuing)) != len(continuing):
            raise InvalidAssertion(f'assumed continuing candidates {list(continuing)} '
                                   f'contain duplicates')
        if winner not in continuing or loser not in continuing:
            raise InvalidAssertion(f'assumed continuing candidates {list(continuing)} must '
                                   f'include winner {winner} and loser {loser}')
        super().__init__(contest_name, winner, loser, margin, universe_size, difficulty)
        self._assumed_continuing = continuing

    @property
    def assertion_type(self) -> str:
        return Assertion.ASSERTION_TYPE.NEN

    @property
    def assumed_continuing(self) -> tuple:
        return self._assumed_continuing

    def description(self) -> str:
        return (f'{self._winner} NEN {self._loser} assuming '
                f'({", ".join(self._assumed_continuing)}) are continuing')

    def _indexed(self, reg):
        return NotEliminatedNext(reg.index_of(self._winner), reg.index_of(self._loser),
                                 [reg.index_of(c) for c in self._assumed_continuing])
