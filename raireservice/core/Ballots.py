"""
Consolidation of raw cast-vote-record choices into a multiset of ranked ballots.
"""

import logging
import re
from collections.abc import Mapping

from .Candidates import CandidateRegistry
from .Errors import MalformedBallot, WrongCandidateNames

logger = logging.getLogger(__name__)

# token used in the source data for a write-in choice, and the reserved name it maps to
WRITE_IN_TOKEN = 'WRITE-IN'
WRITE_IN_CANDIDATE = 'WRITE_IN'

# characters left over from the source encoding of the choice list
_NOISE = str.maketrans('', '', '[]"')
_PAIR = re.compile(r'(?P<name>[^()]*)\((?P<rank>[^()]*)\)')
_RANK = re.compile(r'[0-9]+')


##########################################################################################
class CVRContestInfo:
    '''
    The choices on one CVR for one contest, as stored by the election-management system.

    `choices` is the raw text: a comma-separated list of "NAME(RANK)" pairs, possibly wrapped in
    brackets and quotes, e.g. '["ALICE(1)","BOB(2)"]'.
    '''

    def __init__(self, cvr_id: object=None, contest_id: object=None, county_id: object=None,
                 choices: str=''):
        self.cvr_id = cvr_id
        self.contest_id = contest_id
        self.county_id = county_id
        self.choices = choices

    def __str__(self):
        return (f'cvr_id: {self.cvr_id} contest_id: {self.contest_id} county_id: {self.county_id} '
                f'choices: {self.choices}')

    def __eq__(self, other):
        if not isinstance(other, CVRContestInfo):
            return NotImplemented
        return self.__dict__ == other.__dict__

    @classmethod
    def from_dict(cls, d: dict) -> 'CVRContestInfo':
        '''
        build from a dict; accepts snake_case keys or the camelCase keys of the database layer
        '''
        return cls(cvr_id=d.get('cvr_id', d.get('cvrID')),
                   contest_id=d.get('contest_id', d.get('contestID')),
                   county_id=d.get('county_id', d.get('countyID')),
                   choices=d.get('choices', ''))

    @classmethod
    def from_dict_list(cls, rows: list) -> list:
        return [cls.from_dict(r) for r in rows]

    @classmethod
    def coerce(cls, row) -> 'CVRContestInfo':
        '''
        accept a CVRContestInfo, a dict, or a (cvr_id, contest_id, county_id, choices) tuple
        '''
        if isinstance(row, CVRContestInfo):
            return row
        if isinstance(row, Mapping):
            return cls.from_dict(row)
        cvr_id, contest_id, county_id, choices = row
        return cls(cvr_id, contest_id, county_id, choices)


##########################################################################################
class ConsolidatedBallots:
    '''
    Multiset of ranked ballots: maps each distinct ranking (a tuple of candidate indices, most
    preferred first) to the number of ballots with exactly that ranking.

    Identical rankings are always merged into one entry. The empty ranking stands for a ballot
    with no valid preferences.
    '''

    def __init__(self):
        self._counts = {}

    def __str__(self):
        return f'ballots: {self._counts} total: {self.total}'

    def __len__(self):
        return len(self._counts)

    def __iter__(self):
        return iter(self._counts)

    def __contains__(self, ranking):
        return tuple(ranking) in self._counts

    def __getitem__(self, ranking) -> int:
        return self._counts[tuple(ranking)]

    def __eq__(self, other):
        if not isinstance(other, ConsolidatedBallots):
            return NotImplemented
        return self._counts == other._counts

    def add(self, ranking, n: int=1):
        '''
        add `n` ballots with the given ranking

        Parameters
        ----------
        ranking: sequence of int
            candidate indices, most preferred first; no index may appear twice
        n: int
            number of ballots, positive
        '''
        ranking = tuple(ranking)
        if len(set(ranking)) != len(ranking):
            raise ValueError(f'ranking {ranking} lists a candidate more than once')
        if any(isinstance(r, bool) or not isinstance(r, int) or r < 0 for r in ranking):
            raise ValueError(f'ranking {ranking} must contain non-negative integer indices')
        if isinstance(n, bool) or not isinstance(n, int) or n <= 0:
            raise ValueError(f'ballot count must be a positive integer, got {n!r}')
        self._counts[ranking] = self._counts.get(ranking, 0) + n

    def items(self):
        return self._counts.items()

    @property
    def total(self) -> int:
        return sum(self._counts.values())

    def as_votes(self) -> list:
        '''
        list of (ranking, count) pairs, sorted by ranking
        '''
        return sorted(self._counts.items())

    def named(self, candidates) -> dict:
        '''
        the multiset keyed by tuples of candidate names rather than indices
        '''
        reg = CandidateRegistry.coerce(candidates)
        return {tuple(reg.name_of(i) for i in r): n for r, n in self._counts.items()}

    @classmethod
    def from_votes(cls, votes) -> 'ConsolidatedBallots':
        '''
        build from (ranking, count) pairs, merging repeated rankings
        '''
        b = cls()
        for ranking, n in votes:
            b.add(ranking, n)
        return b


##########################################################################################
class ConsolidationResult:
    '''
    Output of one consolidation pass. Unpacks as (ballots, registry, rejected).

    `malformed` keeps a MalformedBallot record for each rejected ballot.
    '''

    def __init__(self, ballots: ConsolidatedBallots, registry: CandidateRegistry,
                 malformed: list):
        self.ballots = ballots
        self.registry = registry
        self.malformed = malformed

    def __iter__(self):
        return iter((self.ballots, self.registry, self.rejected))

    def __str__(self):
        return (f'candidates: {self.registry.candidates} distinct rankings: {len(self.ballots)} '
                f'ballots: {self.total} rejected: {self.rejected}')

    @property
    def rejected(self) -> int:
        return len(self.malformed)

    @property
    def total(self) -> int:
        return self.ballots.total

    @property
    def candidates(self) -> list:
        return self.registry.candidates


##########################################################################################
def sanitize(choices: str) -> str:
    '''
    remove quote and bracket noise, normalize case and surrounding whitespace
    '''
    if choices is None:
        return ''
    return str(choices).translate(_NOISE).upper().strip()


def parse_choices(choices: str, cvr_id: object=None) -> list:
    '''
    Split a raw choice string into (name, rank) pairs, in the order they appear.

    Parameters
    ----------
    choices: str
        raw choice text, e.g. '["ALICE(1)","BOB(2)"]'
    cvr_id: object
        identifier used in error reports

    Returns
    -------
    list of (str, int): upper-cased candidate names (write-ins mapped to WRITE_IN_CANDIDATE)
        and their ranks

    Raises
    ------
    MalformedBallot if a pair has a blank name, or its rank is missing or not a positive integer
    '''
    s = sanitize(choices)
    if not s:
        return []
    pairs = []
    for pair in s.split(','):
        m = _PAIR.fullmatch(pair.strip())
        if m is None:
            raise MalformedBallot(cvr_id, choices, f'choice {pair.strip()!r} has no rank')
        name = ' '.join(m['name'].split())
        rank = m['rank'].strip()
        if not name:
            raise MalformedBallot(cvr_id, choices, f'choice {pair.strip()!r} has no candidate name')
        if not _RANK.fullmatch(rank) or int(rank) == 0:
            raise MalformedBallot(cvr_id, choices,
                                  f'rank {rank!r} for {name} is not a positive integer')
        pairs.append((WRITE_IN_CANDIDATE if name == WRITE_IN_TOKEN else name, int(rank)))
    return pairs


def rank_order(pairs: list, cvr_id: object=None, choices: str='') -> list:
    '''
    Place each candidate at position rank-1 of the ranking.

    Ranks must be exactly 1, ..., n for a ballot with n choices: a repeated candidate, a repeated
    rank, or a rank larger than n (which includes any gap in the ranks) makes the ballot malformed.
    '''
    n = len(pairs)
    ranking = [None]*n
    seen = set()
    for name, rank in pairs:
        if name in seen:
            raise MalformedBallot(cvr_id, choices, f'candidate {name} is ranked more than once')
        seen.add(name)
        if rank > n:
            raise MalformedBallot(cvr_id, choices,
                                  f'rank {rank} for {name} is out of range for {n} choices')
        if ranking[rank-1] is not None:
            raise MalformedBallot(cvr_id, choices,
                                  f'{ranking[rank-1]} and {name} share rank {rank}')
        ranking[rank-1] = name
    return ranking


def _canonical_names(candidates: list) -> dict:
    canon = {}
    for c in candidates:
        key = ' '.join(str(c).split()).upper()
        if not key:
            raise ValueError(f'candidate list {candidates} contains a blank name')
        if key in canon:
            raise ValueError(f'candidate list {candidates} names {c!r} more than once')
        canon[key] = c
    return canon


def consolidate(rows, candidates: list=None, policy: str='reject') -> ConsolidationResult:
    '''
    Turn the raw choices for one contest into a multiset of ranked ballots.

    When `candidates` is given, indices follow that list, so the result does not depend on the
    order of the rows. Otherwise indices are assigned in order of first appearance over the rows,
    in the order the rows are given.

    Parameters
    ----------
    rows: iterable
        CVRContestInfo objects, dicts, or (cvr_id, contest_id, county_id, choices) tuples
    candidates: list
        expected candidate names. Names on ballots are matched case-insensitively and reported
        with the spelling in this list. A ballot naming anyone else means the vote data does not
        match the contest, and the whole pass fails; so does a write-in the list does not
        name. If None, the upper-cased names on the ballots are used.
    policy: str
        'reject' drops each malformed ballot, logs it and counts it; 'raise' stops at the first
        malformed ballot by raising MalformedBallot

    Returns
    -------
    ConsolidationResult: the ballots, the frozen CandidateRegistry, and the rejected ballots

    Raises
    ------
    WrongCandidateNames if a ballot names a candidate who is not in `candidates`
    '''
    if policy not in ('reject', 'raise'):
        raise ValueError(f'unknown malformed-ballot policy {policy!r}')
    canon = None if candidates is None else _canonical_names(candidates)
    registry = CandidateRegistry() if canon is None \
        else CandidateRegistry.from_names(list(canon.values()))
    ballots = ConsolidatedBallots()
    malformed = []
    n_rows = 0
    for row in rows:
        n_rows += 1
        cvr = CVRContestInfo.coerce(row)
        try:
            pairs = parse_choices(cvr.choices, cvr_id=cvr.cvr_id)
            if canon is not None:
                pairs = [(_lookup(canon, name, cvr), rank) for name, rank in pairs]
            ranking = rank_order(pairs, cvr_id=cvr.cvr_id, choices=cvr.choices)
        except MalformedBallot as e:
            if policy == 'raise':
                logger.error(str(e))
                raise
            logger.warning('%s; ballot rejected', e)
            malformed.append(e)
            continue
        ballots.add([registry.register(name) for name in ranking])
    registry.freeze()
    if malformed:
        logger.warning('%d of %d ballots rejected as malformed', len(malformed), n_rows)
    logger.debug('consolidated %d ballots into %d distinct rankings over candidates %s',
                 ballots.total, len(ballots), registry.candidates)
    return ConsolidationResult(ballots, registry, malformed)


def _lookup(canon: dict, name: str, cvr: CVRContestInfo) -> str:
    if name in canon:
        return canon[name]
    if name == WRITE_IN_CANDIDATE and WRITE_IN_TOKEN in canon:
        return canon[WRITE_IN_TOKEN]
    msg = (f'CVR {cvr.cvr_id} (contest {cvr.contest_id}, county {cvr.county_id}) names '
           f'{name}, who is not in the candidate list {list(canon.values())}')
    logger.error(msg)
    raise WrongCandidateNames(msg)
