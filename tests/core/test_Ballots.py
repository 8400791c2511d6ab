import itertools
import logging
import sys

import pytest

from raireservice.core.Ballots import (WRITE_IN_CANDIDATE, ConsolidatedBallots, CVRContestInfo,
                                       consolidate, parse_choices, rank_order, sanitize)
from raireservice.core.Errors import MalformedBallot, WrongCandidateNames


def rows_from(choices):
    return [CVRContestInfo(i, 'C1', '1', c) for i, c in enumerate(choices)]


##########################################################################################
class TestCVRContestInfo:

    def test_from_dict(self):
        snake = CVRContestInfo.from_dict({'cvr_id': 1, 'contest_id': 2, 'county_id': 3,
                                          'choices': 'A(1)'})
        camel = CVRContestInfo.from_dict({'cvrID': 1, 'contestID': 2, 'countyID': 3,
                                          'choices': 'A(1)'})
        assert snake == camel
        assert snake.choices == 'A(1)'
        assert CVRContestInfo.from_dict_list([{'cvr_id': 1}])[0].choices == ''

    def test_coerce(self):
        row = CVRContestInfo(1, 2, 3, 'A(1)')
        assert CVRContestInfo.coerce(row) is row
        assert CVRContestInfo.coerce((1, 2, 3, 'A(1)')) == row
        assert CVRContestInfo.coerce({'cvr_id': 1, 'contest_id': 2, 'county_id': 3,
                                      'choices': 'A(1)'}) == row


##########################################################################################
class TestParsing:

    def test_sanitize(self):
        assert sanitize('["alice(1)","Bob(2)"]') == 'ALICE(1),BOB(2)'
        assert sanitize(None) == ''
        assert sanitize('  [] ') == ''

    def test_parse_choices(self):
        assert parse_choices('["ALICE(1)","BOB(2)"]') == [('ALICE', 1), ('BOB', 2)]
        assert parse_choices('alice ( 2 ), bob(1)') == [('ALICE', 2), ('BOB', 1)]
        assert parse_choices('Mary  Jane(1)') == [('MARY JANE', 1)]
        assert parse_choices('') == []
        assert parse_choices('[]') == []

    def test_write_in(self):
        assert parse_choices('["WRITE-IN(1)","BOB(2)"]') == [(WRITE_IN_CANDIDATE, 1), ('BOB', 2)]

    def test_parse_malformed(self):
        for bad in ['ALICE', 'ALICE(1),BOB', '(1)', 'ALICE()', 'ALICE(x)', 'ALICE(0)',
                    'ALICE(-1)', 'ALICE(1.5)', 'ALICE((1))']:
            with pytest.raises(MalformedBallot) as e:
                parse_choices(bad, cvr_id=7)
            assert e.value.cvr_id == 7
            assert e.value.choices == bad

    def test_rank_order(self):
        assert rank_order([('A', 2), ('B', 1), ('C', 3)]) == ['B', 'A', 'C']
        assert rank_order([]) == []

    def test_rank_order_malformed(self):
        with pytest.raises(MalformedBallot, match='more than once'):
            rank_order([('A', 1), ('A', 2)])
        with pytest.raises(MalformedBallot, match='out of range'):
            rank_order([('A', 1), ('B', 3)])
        with pytest.raises(MalformedBallot, match='share rank'):
            rank_order([('A', 1), ('B', 1)])


##########################################################################################
class TestConsolidatedBallots:

    def test_add_merges(self):
        b = ConsolidatedBallots()
        b.add((0, 1))
        b.add([0, 1], 3)
        b.add(())
        assert len(b) == 2
        assert b[(0, 1)] == 4
        assert [0, 1] in b
        assert b.total == 5
        assert b.as_votes() == [((), 1), ((0, 1), 4)]

    def test_add_invalid(self):
        b = ConsolidatedBallots()
        for ranking, n in [((0, 0), 1), ((-1,), 1), ((True,), 1), ((0.0,), 1), ((0,), 0),
                           ((0,), -2), ((0,), 1.0)]:
            with pytest.raises(ValueError):
                b.add(ranking, n)
        assert len(b) == 0

    def test_from_votes_and_named(self):
        b = ConsolidatedBallots.from_votes([((1, 0), 2), ((1, 0), 1), ((2,), 5)])
        assert b.as_votes() == [((1, 0), 3), ((2,), 5)]
        assert b.named(['A', 'B', 'C']) == {('B', 'A'): 3, ('C',): 5}
        assert b == ConsolidatedBallots.from_votes([((2,), 5), ((1, 0), 3)])


##########################################################################################
class TestConsolidate:

    def test_identical_ballots_merge(self):
        ballots, registry, rejected = consolidate(rows_from(['ALICE(1),BOB(2)',
                                                             'ALICE(1),BOB(2)']))
        assert ballots.named(registry) == {('ALICE', 'BOB'): 2}
        assert len(ballots) == 1
        assert rejected == 0

    def test_rank_governs_position(self):
        ballots, registry, _ = consolidate(rows_from(['ALICE(2),BOB(1)']))
        assert ballots.named(registry) == {('BOB', 'ALICE'): 1}
        # names on a ballot are registered in preference order
        assert registry.candidates == ['BOB', 'ALICE']

    def test_duplicate_candidate_rejected(self, caplog):
        with caplog.at_level(logging.WARNING):
            result = consolidate(rows_from(['ALICE(1),ALICE(2)', 'BOB(1)']))
        assert result.rejected == 1
        assert result.total == 1
        assert result.ballots.named(result.registry) == {('BOB',): 1}
        assert result.malformed[0].cvr_id == 0
        assert 'ballot rejected' in caplog.text

    def test_rejected_ballot_registers_nobody(self):
        result = consolidate(rows_from(['ZED(1),ZED(2)', 'BOB(1)']))
        assert result.candidates == ['BOB']

    def test_policy_raise(self):
        with pytest.raises(MalformedBallot):
            consolidate(rows_from(['BOB(1)', 'ALICE(1),BOB(1)']), policy='raise')
        with pytest.raises(ValueError):
            consolidate(rows_from(['BOB(1)']), policy='ignore')

    def test_first_seen_order(self):
        choices = ['["CHUAN(1)"]', '["ALICE(1)","CHUAN(2)"]', '["BOB(2)","ALICE(1)"]', '']
        ballots, registry, _ = consolidate(rows_from(choices))
        assert registry.candidates == ['CHUAN', 'ALICE', 'BOB']
        assert registry.frozen
        assert ballots.as_votes() == [((), 1), ((0,), 1), ((1, 0), 1), ((1, 2), 1)]

    def test_permutations_merge(self):
        # the same preferences written in any order consolidate to the same ranking
        pairs = ['ALICE(1)', 'BOB(2)', 'CHUAN(3)']
        choices = [','.join(p) for p in itertools.permutations(pairs)]
        ballots, registry, rejected = consolidate(rows_from(choices))
        assert ballots.named(registry) == {('ALICE', 'BOB', 'CHUAN'): 6}
        assert rejected == 0

    def test_candidate_list(self):
        choices = ['alice(1),BOB(2)', 'Bob(1)', 'WRITE-IN(1)']
        candidates = ['Chuan', 'Bob', WRITE_IN_CANDIDATE, 'Alice']
        ballots, registry, _ = consolidate(rows_from(choices), candidates)
        # canonical spelling and index order both come from the list
        assert registry.candidates == candidates
        assert registry.frozen
        assert ballots.as_votes() == [((1,), 1), ((2,), 1), ((3, 1), 1)]
        assert ballots.named(registry) == {('Alice', 'Bob'): 1, ('Bob',): 1,
                                           (WRITE_IN_CANDIDATE,): 1}

    def test_candidate_list_write_in_token(self):
        ballots, registry, _ = consolidate(rows_from(['write-in(1),ALICE(2)']),
                                           ['Alice', 'Write-In'])
        assert ballots.named(registry) == {('Write-In', 'Alice'): 1}

    def test_unlisted_write_in(self):
        with pytest.raises(WrongCandidateNames):
            consolidate(rows_from(['ALICE(1)', 'WRITE-IN(1),ALICE(2)']), ['Alice', 'Bob'])

    def test_row_order_does_not_matter_with_list(self):
        choices = ['["CHUAN(1)"]', '["ALICE(1)","CHUAN(2)"]', '["BOB(2)","ALICE(1)"]',
                   '["BOB(1)"]']
        outcomes = set()
        for order in itertools.permutations(choices):
            ballots, registry, _ = consolidate(rows_from(order), ['Alice', 'Bob', 'Chuan'])
            outcomes.add((tuple(registry.candidates), tuple(ballots.as_votes())))
        assert outcomes == {(('Alice', 'Bob', 'Chuan'),
                             (((0, 1), 1), ((0, 2), 1), ((1,), 1), ((2,), 1)))}

    def test_row_order_without_list(self):
        # without a list, indices follow first appearance, but the named multiset is the same
        choices = ['["CHUAN(1)"]', '["ALICE(1)","CHUAN(2)"]', '["BOB(1)"]']
        named = set()
        for order in itertools.permutations(choices):
            ballots, registry, _ = consolidate(rows_from(order))
            assert registry.candidates[0] == rank_order(parse_choices(order[0]))[0]
            named.add(frozenset(ballots.named(registry).items()))
        assert len(named) == 1

    def test_candidate_list_unknown_name(self):
        with pytest.raises(WrongCandidateNames):
            consolidate(rows_from(['ALICE(1)', 'DIEGO(1)']), ['Alice', 'Bob'])

    def test_candidate_list_invalid(self):
        with pytest.raises(ValueError):
            consolidate(rows_from(['ALICE(1)']), ['Alice', 'ALICE'])
        with pytest.raises(ValueError):
            consolidate(rows_from(['ALICE(1)']), ['Alice', ' '])

    def test_rows_as_dicts_and_tuples(self):
        rows = [{'cvrID': 1, 'contestID': 'C1', 'countyID': '1', 'choices': 'A(1)'},
                (2, 'C1', '1', 'A(1)')]
        result = consolidate(rows)
        assert result.ballots.named(result.registry) == {('A',): 2}


if __name__ == "__main__":
    sys.exit(pytest.main(["-qq"], plugins=None))
