import sys
from decimal import Decimal

import pytest

from raireservice.core.Errors import RaireErrorCode, RequestValidationError
from raireservice.core.Requests import GenerateAssertionsRequest, GetAssertionsRequest

BYRON = 'Byron Mayoral'


##########################################################################################
class TestGenerateAssertionsRequest:

    def test_valid(self, generate_request, contest_repository):
        generate_request.validate()
        generate_request.validate(contest_repository)

    @pytest.mark.parametrize('args, message', [
        ((None, 100, ['Alice', 'Bob'], 5), 'No contest name.'),
        (('  ', 100, ['Alice', 'Bob'], 5), 'No contest name.'),
        ((BYRON, 100, [], 5), 'Bad candidate list'),
        ((BYRON, 100, None, 5), 'Bad candidate list'),
        ((BYRON, 100, 'Alice,Bob', 5), 'Bad candidate list'),
        ((BYRON, 100, ['Alice', ''], 5), 'Bad candidate list'),
        ((BYRON, 100, ['Alice', 'alice'], 5), 'Duplicate candidates'),
        ((BYRON, 0, ['Alice', 'Bob'], 5), 'Non-positive total auditable ballots.'),
        ((BYRON, -3, ['Alice', 'Bob'], 5), 'Non-positive total auditable ballots.'),
        ((BYRON, None, ['Alice', 'Bob'], 5), 'Non-positive total auditable ballots.'),
        ((BYRON, 100, ['Alice', 'Bob'], 0), 'Non-positive time provision for result.'),
        ((BYRON, 100, ['Alice', 'Bob'], -1.5), 'Non-positive time provision for result.'),
        ((BYRON, 100, ['Alice', 'Bob'], None), 'Non-positive time provision for result.'),
    ])
    def test_invalid(self, args, message):
        with pytest.raises(RequestValidationError, match=message) as e:
            GenerateAssertionsRequest(*args).validate()
        assert e.value.error_code == RaireErrorCode.INVALID_REQUEST

    def test_contest_checks(self, contest_repository, candidates):
        with pytest.raises(RequestValidationError, match='No such contest: Nowhere'):
            GenerateAssertionsRequest('Nowhere', 100, candidates, 5).validate(contest_repository)
        with pytest.raises(RequestValidationError, match='Not all IRV: Plurality Council'):
            GenerateAssertionsRequest('Plurality Council', 100, candidates, 5) \
                .validate(contest_repository)

    def test_from_dict(self, candidates):
        camel = GenerateAssertionsRequest.from_dict({
            'contestName': BYRON, 'totalAuditableBallots': 100, 'candidates': candidates,
            'timeLimitSeconds': 5.0})
        snake = GenerateAssertionsRequest.from_dict({
            'contest_name': BYRON, 'total_auditable_ballots': 100, 'candidates': candidates,
            'time_limit_seconds': 5.0})
        assert camel.__dict__ == snake.__dict__
        assert camel.time_limit_seconds == 5.0


##########################################################################################
class TestGetAssertionsRequest:

    def test_risk_limit(self, candidates):
        r = GetAssertionsRequest(BYRON, 100, candidates, 0.05)
        r.validate()
        assert r.risk_limit == Decimal('0.05')
        # zero and limits above one are accepted
        GetAssertionsRequest(BYRON, 100, candidates, 0).validate()
        GetAssertionsRequest(BYRON, 100, candidates, Decimal('1.5')).validate()

    @pytest.mark.parametrize('risk_limit', [None, -0.01, 'x', 'nan', True])
    def test_bad_risk_limit(self, candidates, risk_limit):
        with pytest.raises(RequestValidationError):
            GetAssertionsRequest(BYRON, 100, candidates, risk_limit).validate()

    def test_from_dict(self, candidates):
        r = GetAssertionsRequest.from_dict({'contestName': BYRON, 'totalAuditableBallots': 100,
                                            'candidates': candidates, 'riskLimit': 0.03})
        r.validate()
        assert r.risk_limit == Decimal('0.03')
        assert r.candidates == candidates


if __name__ == "__main__":
    sys.exit(pytest.main(["-qq"], plugins=None))
