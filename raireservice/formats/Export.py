"""
JSON and CSV renderings of stored assertions for reports.
"""

import csv
import io
import json
from decimal import Decimal

import numpy as np

from ..core.Assertion import Assertion, AuditProgress
from ..raire.raire_utils import AssertionAndDifficulty, RaireAssertion

PREFACE_HEADERS = (CONTEST_NAME_HEADER:= 'Contest name',
                   CANDIDATES_HEADER:= 'Candidates',
                   WINNER_HEADER:= 'Winner',
                   TOTAL_AUDITABLE_BALLOTS_HEADER:= 'Total universe',
                   RISK_LIMIT_HEADER:= 'Risk limit'
                  )

EXTREMUM_HEADERS = ('Extreme item', 'Value', 'Assertion IDs')

CSV_HEADERS = ('ID', 'Type', 'Winner', 'Loser', 'Assumed continuing', 'Difficulty', 'Margin',
               'Diluted margin', 'Risk', 'Estimated samples to audit',
               'Optimistic samples to audit', 'Two vote over count', 'One vote over count',
               'Other discrepancy count', 'One vote under count', 'Two vote under count')

# the columns after ID, as keys of Assertion.as_dict, in order
CSV_FIELDS = ('type', 'winner', 'loser', 'assumed_continuing', 'difficulty', 'margin',
              'diluted_margin', 'current_risk', 'estimated_samples_to_audit',
              'optimistic_samples_to_audit', 'two_vote_over_count', 'one_vote_over_count',
              'other_count', 'one_vote_under_count', 'two_vote_under_count')

MIN, MAX = 'MIN', 'MAX'

# (row label, min or max, value used for comparison, as_dict key used for display)
EXTREMA = (('Margin', MIN, lambda a: a.margin, 'margin'),
           ('Diluted margin', MIN, lambda a: a.diluted_margin, 'diluted_margin'),
           ('Raire difficulty', MAX, lambda a: a.difficulty, 'difficulty'),
           ('Current risk', MAX, lambda a: a.current_risk, 'current_risk'),
           ('Optimistic samples to audit', MAX,
            lambda a: a.progress.optimistic_samples_to_audit, 'optimistic_samples_to_audit'),
           ('Estimated samples to audit', MAX,
            lambda a: a.progress.estimated_samples_to_audit, 'estimated_samples_to_audit'))


##########################################################################################
class NpEncoder(json.JSONEncoder):
    '''
    for json dumps of assertions, algorithm results and parameters
    '''
    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, Assertion):
            return obj.as_dict()
        if isinstance(obj, AuditProgress):
            return obj.__str__()
        if isinstance(obj, (AssertionAndDifficulty, RaireAssertion)):
            return obj.to_dict()
        return super(NpEncoder, self).default(obj)


def assertions_to_json(obj, **kwargs) -> str:
    '''
    json dump of an assertion report (or anything NpEncoder handles)
    '''
    return json.dumps(obj, cls=NpEncoder, **kwargs)


def escape_then_join(values) -> str:
    '''
    the values as one csv row, each escaped as needed
    '''
    out = io.StringIO()
    csv.writer(out, lineterminator='').writerow(values)
    return out.getvalue()


def find_extremum(assertions: list, label: str, kind: str, getter, key: str) -> list:
    '''
    The extreme value of one statistic over the assertions, and the 1-based positions of every
    assertion that attains it. Returns the csv cells [label, value, positions].
    '''
    if not assertions:
        raise ValueError('no assertions')
    best = getter(assertions[0])
    positions = [1]
    for i, a in enumerate(assertions[1:], start=2):
        v = getter(a)
        if v == best:
            positions.append(i)
        elif (kind == MAX and v > best) or (kind == MIN and v < best):
            best = v
            positions = [i]
    return [label, assertions[positions[0]-1].as_dict()[key], ', '.join(map(str, positions))]


def make_csv(contest_name: str, candidates: list, winner: str, total_auditable_ballots: int,
             risk_limit, assertions: list) -> str:
    '''
    CSV report of a contest's assertions.

    Parameters
    ----------
    contest_name: str
    candidates: list
        candidate names, in request order
    winner: str
        the winner recorded for the contest
    total_auditable_ballots: int
    risk_limit: Decimal
    assertions: list of Assertion
        sorted the way the rows should be numbered; must not be empty

    Returns
    -------
    the report: a preface of contest data, the extreme values of the assertion statistics with
    the IDs of the assertions that attain them, then a header row and one row per assertion
    '''
    preface = [escape_then_join([CONTEST_NAME_HEADER, contest_name]),
               escape_then_join([CANDIDATES_HEADER, ','.join(candidates)]),
               escape_then_join([WINNER_HEADER, winner]),
               escape_then_join([TOTAL_AUDITABLE_BALLOTS_HEADER, total_auditable_ballots]),
               escape_then_join([RISK_LIMIT_HEADER, risk_limit])]
    extrema = [escape_then_join(EXTREMUM_HEADERS)] + \
              [escape_then_join(find_extremum(assertions, *e)) for e in EXTREMA]
    rows = [escape_then_join(CSV_HEADERS)]
    for i, a in enumerate(assertions, start=1):
        d = a.as_dict()
        rows.append(escape_then_join([i] + [d[f] for f in CSV_FIELDS]))
    return '\n'.join(preface) + '\n\n' + '\n'.join(extrema) + '\n\n' + '\n'.join(rows) + '\n'
