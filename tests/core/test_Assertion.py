import sys
from decimal import Decimal

import numpy as np
import pytest

from raireservice.core.Assertion import Assertion, AuditProgress, NEBAssertion, NENAssertion
from raireservice.core.Errors import CandidateReferenceError, InvalidAssertion, InvalidRisk
from raireservice.raire.raire_utils import (AssertionAndDifficulty, NotEliminatedBefore,
                                            NotEliminatedNext)


def counts(p):
    return (p.two_vote_under_count, p.one_vote_under_count, p.other_count,
            p.one_vote_over_count, p.two_vote_over_count)


##########################################################################################
class TestAuditProgress:

    def test_initial(self):
        p = AuditProgress()
        assert counts(p) == (0, 0, 0, 0, 0)
        assert p.current_risk == Decimal('1.00')
        assert p.optimistic_samples_to_audit == 0
        assert p.estimated_samples_to_audit == 0
        assert p.discrepancies == {}

    def test_rerecord_supersedes(self):
        p = AuditProgress()
        p.record_discrepancy(13, 1)
        assert p.one_vote_over_count == 1
        p.record_discrepancy(13, -2)
        assert p.one_vote_over_count == 0
        assert p.two_vote_under_count == 1
        assert p.discrepancies == {13: -2}

    def test_counts_agree_with_map(self):
        p = AuditProgress()
        values = [2, 1, 0, -1, -2, 1, 1, 0, 2, -2]
        for i, v in enumerate(values):
            p.record_discrepancy(i % 7, v)
        p.remove_discrepancy(3)
        d = p.discrepancies
        expected = tuple(sum(1 for v in d.values() if v == k)
                         for k in AuditProgress.DISCREPANCY_VALUES)
        assert counts(p) == expected
        assert sum(counts(p)) == len(d)

    def test_discrepancies_is_a_copy(self):
        p = AuditProgress()
        p.record_discrepancy('a', 0)
        p.discrepancies['b'] = 2
        assert p.discrepancies == {'a': 0}
        assert p.two_vote_over_count == 0

    def test_bad_discrepancy(self):
        p = AuditProgress()
        for bad in [3, -3, True, 1.0, '1', None]:
            with pytest.raises(ValueError):
                p.record_discrepancy(1, bad)
        with pytest.raises(ValueError):
            p.record_discrepancy(None, 1)
        with pytest.raises(KeyError):
            p.remove_discrepancy(1)
        assert counts(p) == (0, 0, 0, 0, 0)
        p.record_discrepancy(1, np.int64(2))
        assert p.two_vote_over_count == 1

    def test_risk(self):
        p = AuditProgress()
        p.set_risk(0.2)
        assert p.current_risk == Decimal('0.2')
        p.set_risk(Decimal('1'))
        assert p.current_risk == 1
        for bad in [0, -0.1, 1.01, 'nan', 'inf', 'x', None]:
            with pytest.raises(InvalidRisk):
                p.set_risk(bad)
        assert p.current_risk == 1

    def test_sample_estimates(self):
        p = AuditProgress()
        p.set_sample_estimates(5, 12)
        assert (p.optimistic_samples_to_audit, p.estimated_samples_to_audit) == (5, 12)
        for bad in [(-1, 2), (1, 2.5), (True, 1)]:
            with pytest.raises(ValueError):
                p.set_sample_estimates(*bad)


##########################################################################################
class TestAssertion:

    def test_diluted_margin(self):
        a = NEBAssertion('Ballina', 'Alice', 'Bob', 320, 1000, 1/0.32)
        assert a.diluted_margin == 0.32
        assert a.assertion_type == Assertion.ASSERTION_TYPE.NEB
        assert a.assumed_continuing == ()

    def test_make(self):
        neb = Assertion.make('NEB', 'C', 'Alice', 'Bob', 5, 10, 2.0)
        assert isinstance(neb, NEBAssertion)
        nen = Assertion.make('NEN', 'C', 'Alice', 'Bob', 5, 10, 2.0, ['Bob', 'Alice', 'Chuan'])
        assert isinstance(nen, NENAssertion)
        assert nen.assumed_continuing == ('Bob', 'Alice', 'Chuan')
        with pytest.raises(InvalidAssertion):
            Assertion.make('NEB', 'C', 'Alice', 'Bob', 5, 10, 2.0, ['Alice', 'Bob'])
        with pytest.raises(InvalidAssertion):
            Assertion.make('XYZ', 'C', 'Alice', 'Bob', 5, 10)

    @pytest.mark.parametrize('args', [
        ('', 'Alice', 'Bob', 5, 10, 1.0),
        ('C', ' ', 'Bob', 5, 10, 1.0),
        ('C', 'Alice', None, 5, 10, 1.0),
        ('C', 'Alice', 'Alice', 5, 10, 1.0),
        ('C', 'Alice', 'Bob', -1, 10, 1.0),
        ('C', 'Alice', 'Bob', 11, 10, 1.0),
        ('C', 'Alice', 'Bob', 2.5, 10, 1.0),
        ('C', 'Alice', 'Bob', 5, 0, 1.0),
        ('C', 'Alice', 'Bob', 5, 10, -1.0),
        ('C', 'Alice', 'Bob', 5, 10, float('nan')),
        ('C', 'Alice', 'Bob', 5, 10, 'hard'),
    ])
    def test_invalid_neb(self, args):
        with pytest.raises(InvalidAssertion):
            NEBAssertion(*args)

    def test_invalid_nen(self):
        for continuing in [None, [], 'AliceBob', ['Alice'], ['Alice', 'Chuan'],
                           ['Alice', 'Bob', 'Alice']]:
            with pytest.raises(InvalidAssertion):
                NENAssertion('C', 'Alice', 'Bob', 5, 10, 1.0, continuing)

    def test_abstract(self):
        with pytest.raises(InvalidAssertion):
            Assertion('C', 'Alice', 'Bob', 5, 10, 1.0)

    def test_kind_hooks_must_be_overridden(self):
        class Partial(Assertion):
            pass
        a = Partial('C', 'Alice', 'Bob', 5, 10, 1.0)
        for hook in [lambda: a.assertion_type, lambda: a.assumed_continuing, a.description,
                     lambda: a.to_indexed(['Alice', 'Bob'])]:
            with pytest.raises(NotImplementedError):
                hook()

    def test_infinite_difficulty_allowed(self):
        a = NEBAssertion('C', 'Alice', 'Bob', 0, 10, np.inf)
        assert a.difficulty == np.inf
        assert a.margin == 0

    def test_read_only(self):
        a = NEBAssertion('C', 'Alice', 'Bob', 5, 10, 1.0)
        with pytest.raises(AttributeError):
            a.margin = 6
        with pytest.raises(AttributeError):
            a.winner = 'Bob'

    def test_description(self):
        assert NEBAssertion('C', 'Alice', 'Bob', 5, 10).description() == 'Alice NEB Bob'
        nen = NENAssertion('C', 'Alice', 'Bob', 5, 10, 1.0, ['Alice', 'Bob'])
        assert nen.description() == 'Alice NEN Bob assuming (Alice, Bob) are continuing'

    def test_same_as(self):
        a = NENAssertion('C', 'Alice', 'Bob', 5, 10, 1.0, ['Alice', 'Bob', 'Chuan'])
        b = NENAssertion('C', 'Alice', 'Bob', 5, 10, 1.0, ['Chuan', 'Bob', 'Alice'])
        b.progress.record_discrepancy(1, 1)
        assert a.same_as(b)
        assert not a.same_as(NENAssertion('C', 'Alice', 'Bob', 5, 10, 1.0, ['Alice', 'Bob']))
        assert not a.same_as(NEBAssertion('C', 'Alice', 'Bob', 5, 10, 1.0))


##########################################################################################
class TestConversion:

    def test_neb_to_indexed(self, candidates):
        a = NEBAssertion('C', 'Alice', 'Chuan', 35, 100, 2.857)
        indexed = a.to_indexed(candidates)
        assert isinstance(indexed, AssertionAndDifficulty)
        assert indexed.to_dict() == {
            'assertion': {'type': 'NEB', 'winner': 0, 'loser': 2},
            'difficulty': 2.857, 'margin': 35, 'status': {'risk': Decimal('1.00')}}

    def test_nen_to_indexed(self, candidates):
        a = NENAssertion('C', 'Chuan', 'Alice', 5, 100, 20.0, ['Chuan', 'Alice', 'Bob'])
        a.progress.set_risk('0.08')
        indexed = a.to_indexed(candidates)
        assert indexed.assertion.to_dict() == {'type': 'NEN', 'winner': 2, 'loser': 0,
                                               'continuing': [0, 1, 2]}
        assert indexed.status == {'risk': Decimal('0.08')}

    def test_to_indexed_unknown_candidate(self):
        a = NEBAssertion('C', 'Alice', 'Diego', 35, 100, 2.857)
        with pytest.raises(CandidateReferenceError):
            a.to_indexed(['Alice', 'Bob'])

    def test_from_indexed(self, candidates):
        nen = NotEliminatedNext(1, 2, [2, 1])
        a = Assertion.from_indexed(AssertionAndDifficulty(nen, 2.5, 40), candidates, 'C', 100)
        assert isinstance(a, NENAssertion)
        assert (a.winner, a.loser, a.assumed_continuing) == ('Bob', 'Chuan', ('Bob', 'Chuan'))
        assert (a.margin, a.difficulty, a.diluted_margin) == (40, 2.5, 0.4)

        neb = NotEliminatedBefore(0, 1)
        neb.votes_for_winner, neb.votes_for_loser, neb.difficulty = 55, 45, 10.0
        b = Assertion.from_indexed(neb, candidates, 'C', 100)
        assert isinstance(b, NEBAssertion)
        assert (b.winner, b.loser, b.margin, b.difficulty) == ('Alice', 'Bob', 10, 10.0)

    def test_from_indexed_bad_index(self, candidates):
        with pytest.raises(CandidateReferenceError):
            Assertion.from_indexed(AssertionAndDifficulty(NotEliminatedBefore(0, 3), 1.0, 1),
                                   candidates, 'C', 100)

    def test_round_trip(self, candidates):
        originals = [NEBAssertion('C', 'Bob', 'Alice', 7, 100, 14.2857),
                     NENAssertion('C', 'Alice', 'Bob', 3, 100, 33.3, ['Bob', 'Chuan', 'Alice'])]
        for a in originals:
            back = Assertion.from_indexed(a.to_indexed(candidates), candidates, 'C', 100)
            assert back.same_as(a)


##########################################################################################
class TestAsDict:

    def test_keys_in_order(self):
        a = NENAssertion('C', 'Alice', 'Bob', 3, 7, 2.123456, ['Alice', 'Bob', 'Chuan'])
        a.progress.record_discrepancy(1, 2)
        a.progress.record_discrepancy(2, -1)
        a.progress.set_risk('0.5')
        a.progress.set_sample_estimates(10, 20)
        assert list(a.as_dict().items()) == [
            ('type', 'NEN'), ('winner', 'Alice'), ('loser', 'Bob'),
            ('assumed_continuing', 'Alice,Bob,Chuan'), ('difficulty', 2.1235), ('margin', 3),
            ('diluted_margin', 0.4286), ('current_risk', '0.5'),
            ('estimated_samples_to_audit', 20), ('optimistic_samples_to_audit', 10),
            ('two_vote_over_count', 1), ('one_vote_over_count', 0), ('other_count', 0),
            ('one_vote_under_count', 1), ('two_vote_under_count', 0)]


if __name__ == "__main__":
    sys.exit(pytest.main(["-qq"], plugins=None))
