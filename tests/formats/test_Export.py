import json
import sys
from decimal import Decimal

import numpy as np
import pytest

from raireservice.core.Assertion import NEBAssertion
from raireservice.formats.Export import (CSV_HEADERS, assertions_to_json, escape_then_join,
                                         find_extremum, make_csv, MAX, MIN)
from raireservice.raire.raire_utils import AssertionAndDifficulty, NotEliminatedBefore


##########################################################################################
class TestEscapeThenJoin:

    def test_quoting(self):
        assert escape_then_join(['a', 'b c', 1]) == 'a,b c,1'
        assert escape_then_join(['Alice,Bob', 'say "hi"']) == '"Alice,Bob","say ""hi"""'
        assert escape_then_join(['x', '', Decimal('0.03')]) == 'x,,0.03'


##########################################################################################
class TestExtremum:

    def test_positions(self, sample_assertions):
        assert find_extremum(sample_assertions, 'Margin', MIN, lambda a: a.margin, 'margin') \
            == ['Margin', 10, '1, 3']
        assert find_extremum(sample_assertions, 'Raire difficulty', MAX,
                             lambda a: a.difficulty, 'difficulty') \
            == ['Raire difficulty', 10.0, '1']
        with pytest.raises(ValueError):
            find_extremum([], 'Margin', MIN, lambda a: a.margin, 'margin')


##########################################################################################
class TestMakeCsv:

    def test_report(self, sample_assertions, candidates):
        sample_assertions[1].progress.set_risk('0.5')
        sample_assertions[1].progress.set_sample_estimates(30, 45)
        sample_assertions[2].progress.record_discrepancy(7, 1)
        report = make_csv('Byron Mayoral', candidates, 'Alice', 100, Decimal('0.03'),
                          sample_assertions)
        preface, extrema, table = report.split('\n\n')
        assert preface.split('\n') == ['Contest name,Byron Mayoral',
                                       'Candidates,"Alice,Bob,Chuan"',
                                       'Winner,Alice',
                                       'Total universe,100',
                                       'Risk limit,0.03']
        assert extrema.split('\n') == ['Extreme item,Value,Assertion IDs',
                                       'Margin,10,"1, 3"',
                                       'Diluted margin,0.1,"1, 3"',
                                       'Raire difficulty,10.0,1',
                                       'Current risk,1.00,"1, 3"',
                                       'Optimistic samples to audit,30,2',
                                       'Estimated samples to audit,45,2']
        rows = table.split('\n')
        assert rows[-1] == ''
        assert rows[0] == ','.join(CSV_HEADERS)
        assert rows[1:4] == ['1,NEB,Alice,Bob,,10.0,10,0.1,1.00,0,0,0,0,0,0,0',
                             '2,NEN,Bob,Chuan,"Bob,Chuan",2.2222,45,0.45,0.5,45,30,0,0,0,0,0',
                             '3,NEB,Alice,Chuan,,2.857,10,0.1,1.00,0,0,0,1,0,0,0']

    def test_names_are_escaped(self):
        a = NEBAssertion('Council, "Ward 1"', 'Smith, Jo', 'Lee', 1, 10, 10.0)
        report = make_csv('Council, "Ward 1"', ['Smith, Jo', 'Lee'], 'Smith, Jo', 10, 0.05, [a])
        assert report.startswith('Contest name,"Council, ""Ward 1"""\n'
                                 'Candidates,"Smith, Jo,Lee"\n')
        assert '1,NEB,"Smith, Jo",Lee,' in report


##########################################################################################
class TestJson:

    def test_encoder(self, sample_assertions):
        indexed = AssertionAndDifficulty(NotEliminatedBefore(0, 1), np.float64(10.0),
                                         np.int64(10), status={'risk': Decimal('0.25')})
        out = json.loads(assertions_to_json({'indexed': indexed,
                                             'stored': sample_assertions[0],
                                             'array': np.arange(3)}))
        assert out['indexed'] == {'assertion': {'type': 'NEB', 'winner': 0, 'loser': 1},
                                  'difficulty': 10.0, 'margin': 10, 'status': {'risk': 0.25}}
        assert out['stored']['type'] == 'NEB'
        assert out['stored']['current_risk'] == '1.00'
        assert out['array'] == [0, 1, 2]
        with pytest.raises(TypeError):
            assertions_to_json({'x': object()})


if __name__ == "__main__":
    sys.exit(pytest.main(["-qq"], plugins=None))
