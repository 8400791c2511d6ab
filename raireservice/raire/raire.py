# Copyright (C) 2022 Michelle Blom
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.

# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.


from .raire_utils import (
  AssertionAndDifficulty,
  Contest,
  NotEliminatedBefore,
  RaireFrontier,
  RaireNode,
  find_best_audit,
  perform_dive,
  manage_node,
  tallies
)
from .difficulty import difficulty_function
from ..core.Ballots import ConsolidatedBallots
from ..core.Errors import (
  CouldNotRuleOut,
  InvalidCandidateNumber,
  InvalidNumberOfCandidates,
  InvalidTimeout,
  TiedWinners,
  TimeoutCheckingWinner,
  TimeoutFindingAssertions,
  WrongWinner
)

import math
import sys
import time
import warnings

import numpy as np


DEFAULT_TIME_LIMIT = 10.0


class RaireResult:
    '''
    Output of a successful run of the assertion-generation algorithm.

    difficulty is the largest difficulty of any assertion, margin the smallest margin, and winner
    the index of the IRV winner. The time_to_* attributes are in seconds.
    warning_trim_timed_out is set when the time limit ran out while removing redundant
    assertions: the assertions returned are still sufficient, but may not be minimal.
    '''

    def __init__(self, assertions, difficulty, margin, winner, num_candidates,
                 time_to_determine_winners=0.0, time_to_find_assertions=0.0,
                 time_to_trim_assertions=0.0, warning_trim_timed_out=False):
        self.assertions = assertions
        self.difficulty = difficulty
        self.margin = margin
        self.winner = winner
        self.num_candidates = num_candidates
        self.time_to_determine_winners = time_to_determine_winners
        self.time_to_find_assertions = time_to_find_assertions
        self.time_to_trim_assertions = time_to_trim_assertions
        self.warning_trim_timed_out = warning_trim_timed_out

    def __str__(self):
        return (f'winner: {self.winner} assertions: {len(self.assertions)} '
                f'difficulty: {self.difficulty} margin: {self.margin} '
                f'trim timed out: {self.warning_trim_timed_out}')

    def to_dict(self):
        return {'assertions': [a.to_dict() for a in self.assertions],
                'difficulty': self.difficulty,
                'margin': self.margin,
                'winner': self.winner,
                'num_candidates': self.num_candidates,
                'time_to_determine_winners': {'seconds': self.time_to_determine_winners},
                'time_to_find_assertions': {'seconds': self.time_to_find_assertions},
                'time_to_trim_assertions': {'seconds': self.time_to_trim_assertions},
                'warning_trim_timed_out': self.warning_trim_timed_out}


def _timed_out(deadline):
    return deadline is not None and time.monotonic() > deadline


def irv_winners(ncands, ballots, deadline=None):
    '''
    Find every candidate who wins the IRV count under some way of breaking
    ties for last place.

    Input:
        ncands         - number of candidates
        ballots        - mapping of ranking to number of ballots
        deadline       - time.monotonic() value after which to give up

    Output:
        dict mapping each possible winner to an elimination order (ending
        with that winner) that makes them win.

    Raises TimeoutCheckingWinner if the deadline passes.
    '''
    winners = {}
    seen = set()
    stack = [(frozenset(range(ncands)), ())]

    while stack:
        if _timed_out(deadline):
            raise TimeoutCheckingWinner()

        continuing, order = stack.pop()
        if continuing in seen:
            continue
        seen.add(continuing)

        if len(continuing) == 1:
            (w,) = continuing
            winners.setdefault(w, list(order) + [w])
            continue

        tally = tallies(ballots, continuing, ncands)
        lowest = min(tally[c] for c in continuing)

        for c in sorted(continuing, reverse=True):
            if tally[c] == lowest:
                stack.append((continuing - {c}, order + (c,)))

    return winners


def compute_neb_matrix(contest, ballots, asn_func):
    '''
    For each ordered pair of candidates (c, d), the NEB assertion that c is
    not eliminated before d, if c's first preference tally beats the votes d
    can get while c is standing, and None otherwise.
    '''
    nebs = {c : { d : None for d in contest.candidates}
        for c in contest.candidates}

    for c in contest.candidates:
        for d in contest.candidates:
            if c == d:
                continue

            asrn = NotEliminatedBefore(c, d)

            tally_c = 0
            tally_d = 0
            for blt, n in ballots.items():
                tally_c += n*asrn.is_vote_for_winner(blt)
                tally_d += n*asrn.is_vote_for_loser(blt)

            if tally_c > tally_d:
                asrn.difficulty = asn_func(tally_c, tally_d, \
                    contest.tot_ballots - (tally_c + tally_d), \
                    contest.tot_ballots)

                asrn.votes_for_winner = tally_c
                asrn.votes_for_loser = tally_d

                nebs[c][d] = asrn

    return nebs


def compute_raire_assertions(
    contest, ballots, asn_func, log, stream=sys.stdout, agap=0, deadline=None
):
    """
    Inputs:
        contest        - the contest being audited (Contest structure); its
                         'outcome' is the reported elimination order

        ballots        - mapping of ranking (tuple of candidate indices) to
                         the number of ballots with that ranking

        asn_func       - function that takes four values as input: tally for
                         the winner of an assertion; the loser; the number of
                         other ballots; and the total number of auditable
                         ballots. Returns an estimate of how difficult an
                         assertion with that margin will be to audit.

        log            - flag indicating if logging statements should
                         be printed during the algorithm.

        stream         - stream to which logging statements should
                         be printed.

        agap           - allowed gap between the lower and upper bound
                         on expected audit difficulty. Once these bounds
                         converge (to within 'agap') algorithm can stop
                         and return the audit configuration found.

        deadline       - time.monotonic() value after which to give up.

    Outputs:
        A list of assertions, without duplicates, that together rule out
        every alternate outcome in which a candidate other than the winner
        wins, sorted by how much of the alternate outcome space they rule
        out (most to least). Redundant assertions are not yet removed; see
        trim_assertions.

    Raises CouldNotRuleOut if some alternate outcome cannot be ruled out, and
    TimeoutFindingAssertions if the deadline passes.
    """
    ncands = len(contest.candidates)
    winner = contest.winner

    # First look at all of the NEB assertions that could be formed for
    # this contest. We will refer to this matrix when examining the best
    # way to prune branches of the "alternate outcome space".
    nebs = compute_neb_matrix(contest, ballots, asn_func)

    # The RAIRE algorithm progressively searches through the space of
    # alternate election outcomes, viewing this space as a tree. We store
    # the current leaves of this tree, at any point in the search, in a
    # list called 'frontier'. Each leaf is a (potentially) partial election
    # outcome, describing the tail of the elimination sequence and eventual
    # winner. All candidates not mentioned in this tail are assumed to have
    # already been eliminated.

    # This is a running lowerbound on the overall difficulty of the
    # election audit.
    lowerbound = -10

    frontier = RaireFrontier()

    # Our frontier initially has a node for each alternate election outcome
    # tail of size two. The last candidate in the tail is the ultimate winner.
    for c in contest.candidates:
        if c == winner: continue

        for d in contest.candidates:
            if c == d: continue

            newn = RaireNode([d,c])
            newn.expandable = True if ncands > 2 else False

            find_best_audit(contest, ballots, nebs, newn, asn_func)

            if log:
                print("TESTED ", file=stream, end='')
                newn.display(stream=stream)
                if newn.best_assertion != None:
                    print("   Best audit ", file=stream, end='')
                    newn.best_assertion.display(stream=stream)

            frontier.insert_node(newn)

    if log:
        print("===============================================", file=stream)
        print("Initial Frontier", file=stream)
        frontier.display(stream=stream)
        print("===============================================", file=stream)

    # -------------------- Find Assertions -----------------------------------
    while True:
        if _timed_out(deadline):
            raise TimeoutFindingAssertions(float(max(lowerbound, 0)))

        # Check whether we can stop searching for assertions.
        max_on_frontier = max([node.estimate for node in frontier.nodes])

        if agap > 0 and lowerbound > 0 and max_on_frontier-lowerbound <= agap:
            # We can rule out all branches of the tree with assertions that
            # have a difficulty that is <= lowerbound.
            break

        to_expand = frontier.nodes[0]

        # We can also stop searching if all nodes on our frontier are leaves.
        if not to_expand.expandable:
            break

        frontier.nodes.pop(0)

        if to_expand.best_ancestor != None and \
            to_expand.best_ancestor.estimate <= lowerbound:
            frontier.replace_descendents(to_expand.best_ancestor, log,
                stream=stream)
            continue

        if to_expand.estimate <= lowerbound:
            to_expand.expandable = False
            frontier.insert_node(to_expand)
            continue

        #--------------------------------------------------------------------
        # "Dive" straight from "to_expand" down to a leaf -- one of its
        # decendants -- and find the least cost assertion to rule out the
        # branch of the alternate outcomes tree that ends in that leaf. We
        # know that this assertion will be part of the audit, as we have
        # to rule out all branches.
        if not to_expand.dive_node:
            try:
                dive_lb = perform_dive(to_expand, contest, ballots, nebs, \
                    asn_func, lowerbound, frontier, log, stream=stream)
            except CouldNotRuleOut:
                if log:
                    print("Diving finds that audit is not possible", file=stream)
                raise

            if log:
                print("Diving LB {}, Current LB {}".format(dive_lb,
                    lowerbound), file=stream)

            # We can use our new knowledge of the "best" way to rule out
            # the branch to update our "lowerbound" on the overall "difficulty"
            # of the eventual audit.
            lowerbound = max(lowerbound, dive_lb)

            if to_expand.best_ancestor != None and \
                to_expand.best_ancestor.estimate <= lowerbound:
                frontier.replace_descendents(to_expand.best_ancestor, log,
                    stream=stream)
                continue

            if to_expand.estimate <= lowerbound:
                to_expand.expandable = False
                frontier.insert_node(to_expand)
                continue

        #--------------------------------------------------------------------

        if log:
            print("  Expanding node ", file=stream, end='')
            to_expand.display(stream=stream)

        # Find children of current node, and find the best assertions that
        # could be used to prune those nodes from the tree of alternate
        # outcomes.
        for c in contest.candidates:
            if not c in to_expand.tail and not c in to_expand.explored:
                newn = RaireNode([c] + to_expand.tail)
                newn.expandable = False if len(newn.tail) == ncands else True

                # Assign a 'best ancestor' to the new node.
                newn.best_ancestor = to_expand.best_ancestor if \
                    to_expand.best_ancestor != None and \
                    to_expand.best_ancestor.estimate <= to_expand.estimate \
                    else to_expand

                find_best_audit(contest, ballots, nebs, newn, asn_func)

                if log:
                    print("TESTED ", file=stream, end='')
                    newn.display(stream=stream)

                lowerbound, _ = manage_node(newn, frontier, lowerbound, log,
                    stream=stream)

        if log:
            print("Size of frontier {}, current lower bound {}".format(
                len(frontier.nodes), lowerbound), file=stream)

    # A leaf left on the frontier without an assertion is an outcome that
    # nothing rules out.
    for node in frontier.nodes:
        if node.best_assertion is None:
            if log:
                print("AUDIT NOT POSSIBLE", file=stream)
            raise CouldNotRuleOut(node.tail)

    # ------------------------------------------------------------------------
    # Some assertions will be used to rule out multiple branches of our
    # alternate outcome tree. Form a list of all these assertions, without
    # duplicates.
    assertions = []

    for node in frontier.nodes:
        skip = False
        for assrtn in assertions:
            if node.best_assertion.same_as(assrtn):
                assrtn.rules_out.update(node.best_assertion.rules_out)
                skip = True
                break

        if not skip:
            assertions.append(node.best_assertion)

    # Assertions will be sorted in order of how much of the alternate
    # outcome space they rule out (most to least).
    return sorted(assertions)


def trim_assertions(sorted_assertions, log, stream=sys.stdout, deadline=None):
    '''
    Remove assertions that are subsumed by an assertion already kept.

    Returns the kept assertions and a flag that is True if the deadline
    passed before every assertion was checked; in that case the unchecked
    assertions are all kept.
    '''
    if sorted_assertions == []:
        return [], False

    final_audit = [sorted_assertions[0]]

    for i, assertion in enumerate(sorted_assertions[1:], start=1):
        if _timed_out(deadline):
            if log:
                print("Trimming timed out", file=stream)
            return final_audit + sorted_assertions[i:], True

        subsumed = False
        for fasrtn in final_audit:
            if fasrtn.subsumes(assertion):
                fasrtn.rules_out.update(assertion.rules_out)
                if log:
                    print("{} SUBSUMES {}".format(fasrtn.to_str(),
                        assertion.to_str()), file=stream)

                subsumed = True
                break

        if not subsumed:
            final_audit.append(assertion)

    if log:
        print("===============================================", file=stream)
        print("ASSERTIONS:", file=stream)
        for assertion in final_audit:
            assertion.display(stream=stream)
        print("===============================================", file=stream)

    return final_audit, False


def solve(candidates, ballots, total_auditable_ballots, time_limit=DEFAULT_TIME_LIMIT,
          audit_type='ONE_ON_DILUTED_MARGIN', winner=None, log=False, stream=sys.stdout,
          agap=0):
    '''
    Generate assertions that, if they hold, confirm the IRV winner of a contest.

    Parameters
    ----------
    candidates: list
        candidate names; ballots refer to candidates by their index in this list
    ballots: ConsolidatedBallots or list of (ranking, count) pairs
        the votes
    total_auditable_ballots: int
        size of the audit universe; at least the number of ballots
    time_limit: float
        seconds allowed in total for checking the winner, finding assertions and trimming them
    audit_type: str
        'ONE_ON_DILUTED_MARGIN' or 'BALLOT_POLLING'; selects the difficulty estimator
    winner: int
        the reported winner, if known; checked against the computed one
    log: bool
        print a trace of the search to `stream`
    agap: float
        allowed gap between the bounds on difficulty; see compute_raire_assertions

    Returns
    -------
    RaireResult

    Raises
    ------
    InvalidNumberOfCandidates, InvalidTimeout, InvalidCandidateNumber, TimeoutCheckingWinner,
    TiedWinners, WrongWinner, TimeoutFindingAssertions, CouldNotRuleOut
    '''
    start = time.monotonic()

    ncands = len(candidates)
    if ncands == 0:
        raise InvalidNumberOfCandidates()

    if time_limit is None or not time_limit > 0:
        raise InvalidTimeout()

    if not isinstance(ballots, ConsolidatedBallots):
        ballots = ConsolidatedBallots.from_votes(ballots)

    for blt in ballots:
        if any(c >= ncands for c in blt):
            raise InvalidCandidateNumber()

    if total_auditable_ballots < ballots.total:
        raise ValueError(f'total auditable ballots {total_auditable_ballots} is less than the '
                         f'number of ballots {ballots.total}')

    asn_func = difficulty_function(audit_type)
    deadline = None if math.isinf(time_limit) else start + time_limit

    np.seterr(all="ignore")

    winners = irv_winners(ncands, ballots, deadline=deadline)
    found_winners = time.monotonic()
    if log:
        print("Possible winners: {}".format(sorted(winners)), file=stream)

    if len(winners) > 1:
        raise TiedWinners(sorted(winners))

    (irv_winner, order), = winners.items()
    if winner is not None and winner != irv_winner:
        raise WrongWinner([irv_winner])

    contest = Contest('contest', range(ncands), irv_winner, total_auditable_ballots,
                      order=order)

    found = [] if ncands == 1 else compute_raire_assertions(
        contest, ballots, asn_func, log, stream=stream, agap=agap, deadline=deadline)
    found_assertions = time.monotonic()

    audit, trim_timed_out = trim_assertions(found, log, stream=stream, deadline=deadline)
    trimmed = time.monotonic()

    if trim_timed_out:
        warnings.warn('time out trimming assertions: the assertions are sufficient but may '
                      'include some that are redundant')

    assertions = [AssertionAndDifficulty.from_raire_assertion(a) for a in audit]

    return RaireResult(
        assertions,
        difficulty=max([a.difficulty for a in assertions], default=0.0),
        margin=min([a.margin for a in assertions], default=0),
        winner=irv_winner,
        num_candidates=ncands,
        time_to_determine_winners=found_winners - start,
        time_to_find_assertions=found_assertions - found_winners,
        time_to_trim_assertions=trimmed - found_assertions,
        warning_trim_timed_out=trim_timed_out)
