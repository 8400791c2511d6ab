# fixtures to configure unit tests

from decimal import Decimal

import pytest

from raireservice.core.Assertion import NEBAssertion, NENAssertion
from raireservice.core.Ballots import CVRContestInfo
from raireservice.core.Config import Config
from raireservice.core.Repository import (AssertionRepository, ContestRecord, ContestRepository,
                                          CVRRepository, SummaryRepository)
from raireservice.core.Requests import GenerateAssertionsRequest, GetAssertionsRequest

BYRON = 'Byron Mayoral'


@pytest.fixture
def candidates():
    return ['Alice', 'Bob', 'Chuan']


@pytest.fixture
def byron_rows():
    '''
    Alice 55 first preferences, Bob 25, Chuan 20 (all passing to Bob). Chuan is eliminated first,
    then Alice beats Bob 55 to 45.
    '''
    rows = [CVRContestInfo(i, 'C1', '1', '["ALICE(1)"]') for i in range(55)]
    rows += [CVRContestInfo(55+i, 'C1', '1', '["BOB(1)"]') for i in range(25)]
    rows += [CVRContestInfo(80+i, 'C1', '1', '["CHUAN(1)","BOB(2)"]') for i in range(20)]
    return rows


@pytest.fixture
def cvr_repository(byron_rows):
    repo = CVRRepository()
    repo.add_all(byron_rows)
    repo.add(CVRContestInfo(1000, 'P1', '1', '["ALICE(1)"]'))
    return repo


@pytest.fixture
def contest_repository():
    repo = ContestRepository()
    repo.add(ContestRecord('C1', '1', BYRON))
    repo.add(ContestRecord('P1', '1', 'Plurality Council', 'Plurality'))
    repo.add({'contest_id': 'E1', 'county_id': '2', 'name': 'Empty Contest'})
    return repo


@pytest.fixture
def assertion_repository():
    return AssertionRepository()


@pytest.fixture
def summary_repository():
    return SummaryRepository()


@pytest.fixture
def fast_config():
    return Config(time_limit_seconds=5.0)


@pytest.fixture
def generate_request(candidates):
    return GenerateAssertionsRequest(BYRON, 100, candidates, 5.0)


@pytest.fixture
def get_request(candidates):
    return GetAssertionsRequest(BYRON, 100, candidates, Decimal('0.03'))


@pytest.fixture
def sample_assertions():
    '''
    three assertions for the Byron contest, as they would be stored
    '''
    return [NEBAssertion(BYRON, 'Alice', 'Bob', 10, 100, 10.0),
            NENAssertion(BYRON, 'Bob', 'Chuan', 45, 100, 2.2222, ['Bob', 'Chuan']),
            NEBAssertion(BYRON, 'Alice', 'Chuan', 10, 100, 2.857)]
