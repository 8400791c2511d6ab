"""
In-memory stores for CVRs, contests, assertions and generation summaries.
"""

import logging
import threading
from collections import defaultdict

from .Assertion import Assertion
from .Ballots import CVRContestInfo
from .Errors import ConcurrentModificationError, RaireErrorCode, RaireServiceError
from .Summary import GenerateAssertionsSummary

logger = logging.getLogger(__name__)


##########################################################################################
class CVRRepository:
    '''
    CVR choices, one row per (CVR, contest)
    '''

    def __init__(self):
        self._rows = []

    def __len__(self):
        return len(self._rows)

    def add(self, row):
        self._rows.append(CVRContestInfo.coerce(row))

    def add_all(self, rows):
        for r in rows:
            self.add(r)

    def find_by_contest(self, contest_id, county_id) -> list:
        '''
        rows for one contest in one county, in the order they were added
        '''
        return [r for r in self._rows if r.contest_id == contest_id and r.county_id == county_id]

    def find_by_contests(self, pairs) -> list:
        '''
        rows for several (contest_id, county_id) pairs, grouped by pair in the order given
        '''
        rows = []
        for contest_id, county_id in pairs:
            rows.extend(self.find_by_contest(contest_id, county_id))
        return rows


##########################################################################################
class ContestRecord:
    '''
    one contest in one county; `description` is the voting method, e.g. "IRV" or "Plurality"
    '''
    IRV = 'IRV'

    def __init__(self, contest_id, county_id, name: str, description: str=IRV):
        self.contest_id = contest_id
        self.county_id = county_id
        self.name = name
        self.description = description

    def __str__(self):
        return str(self.__dict__)

    @classmethod
    def from_dict(cls, d: dict) -> 'ContestRecord':
        return cls(d['contest_id'], d['county_id'], d['name'], d.get('description', cls.IRV))


class ContestRepository:
    '''
    contests; a contest name may span several counties, each with its own record
    '''

    def __init__(self):
        self._contests = []

    def add(self, contest):
        if isinstance(contest, dict):
            contest = ContestRecord.from_dict(contest)
        self._contests.append(contest)

    def find_by_name(self, name: str) -> list:
        return [c for c in self._contests if c.name == name]

    def find_first_by_name(self, name: str):
        found = self.find_by_name(name)
        return found[0] if found else None

    def is_all_irv(self, name: str) -> bool:
        '''
        does the contest exist, with every county's part of it an IRV contest?
        '''
        found = self.find_by_name(name)
        return bool(found) and all(c.description == ContestRecord.IRV for c in found)


##########################################################################################
class AssertionRepository:
    '''
    Stored assertions, by contest name.

    The assertions for a contest are replaced as a whole: readers see either the old set or the
    new one, never a mixture. Each replacement bumps a per-contest version, which callers can use
    for optimistic locking. Stored assertions get sequential ids.
    '''

    def __init__(self):
        self._lock = threading.RLock()
        self._assertions = {}
        self._versions = defaultdict(int)
        self._next_id = 1

    def version(self, contest_name: str) -> int:
        with self._lock:
            return self._versions[contest_name]

    def find_by_contest_name(self, contest_name: str) -> list:
        '''
        the assertions for a contest, sorted by id; empty if there are none
        '''
        with self._lock:
            return [a for _, a in self._assertions.get(contest_name, [])]

    def find_with_ids(self, contest_name: str) -> list:
        '''
        (id, assertion) pairs for a contest, sorted by id
        '''
        with self._lock:
            return list(self._assertions.get(contest_name, []))

    def get_assertions_or_raise(self, contest_name: str) -> list:
        assertions = self.find_by_contest_name(contest_name)
        if not assertions:
            msg = f'No assertions have been generated for the contest {contest_name}.'
            logger.error(msg)
            raise RaireServiceError(msg, RaireErrorCode.NO_ASSERTIONS_PRESENT)
        return assertions

    def delete_by_contest_name(self, contest_name: str) -> int:
        '''
        delete every assertion for the contest; returns how many were deleted
        '''
        with self._lock:
            deleted = len(self._assertions.pop(contest_name, []))
            self._versions[contest_name] += 1
        logger.debug('deleted %d assertions for contest %s', deleted, contest_name)
        return deleted

    def save_all(self, assertions: list):
        '''
        add assertions to those already stored for their contests
        '''
        with self._lock:
            touched = set()
            for a in assertions:
                if not isinstance(a, Assertion):
                    raise TypeError(f'cannot store {type(a).__name__} as an assertion')
                self._assertions.setdefault(a.contest_name, []).append((self._next_id, a))
                self._next_id += 1
                touched.add(a.contest_name)
            for name in touched:
                self._versions[name] += 1

    def replace_for_contest(self, contest_name: str, assertions: list,
                            expected_version: int=None) -> int:
        '''
        Delete the stored assertions for the contest and save `assertions` in their place, as one
        atomic step.

        Parameters
        ----------
        contest_name: str
        assertions: list of Assertion
            all must belong to contest_name
        expected_version: int
            if given, the version the caller last read; a different current version raises
            ConcurrentModificationError and leaves the store unchanged

        Returns
        -------
        the new version for the contest
        '''
        for a in assertions:
            if not isinstance(a, Assertion) or a.contest_name != contest_name:
                raise ValueError(f'{a} is not an assertion for contest {contest_name}')
        with self._lock:
            current = self._versions[contest_name]
            if expected_version is not None and expected_version != current:
                msg = (f'assertions for contest {contest_name} changed: expected version '
                       f'{expected_version}, found {current}')
                logger.error(msg)
                raise ConcurrentModificationError(msg)
            stored = []
            for a in assertions:
                stored.append((self._next_id, a))
                self._next_id += 1
            if stored:
                self._assertions[contest_name] = stored
            else:
                self._assertions.pop(contest_name, None)
            self._versions[contest_name] = current + 1
            logger.debug('replaced assertions for contest %s with %d assertions, version %d',
                         contest_name, len(stored), current + 1)
            return current + 1

    def translate_and_save_assertions(self, contest_name: str, universe_size: int,
                                      candidates, indexed_assertions: list,
                                      expected_version: int=None) -> list:
        '''
        convert the algorithm's assertions to Assertions and replace the contest's assertions
        with them
        '''
        assertions = [Assertion.from_indexed(a, candidates, contest_name, universe_size)
                      for a in indexed_assertions]
        self.replace_for_contest(contest_name, assertions, expected_version=expected_version)
        return assertions


##########################################################################################
class SummaryRepository:
    '''
    one GenerateAssertionsSummary per contest name
    '''

    def __init__(self):
        self._lock = threading.RLock()
        self._summaries = {}

    def find_by_contest_name(self, contest_name: str):
        with self._lock:
            return self._summaries.get(contest_name)

    def get_or_create(self, contest_name: str) -> GenerateAssertionsSummary:
        with self._lock:
            if contest_name not in self._summaries:
                self._summaries[contest_name] = GenerateAssertionsSummary(contest_name)
            return self._summaries[contest_name]

    def save(self, summary: GenerateAssertionsSummary):
        with self._lock:
            self._summaries[summary.contest_name] = summary
