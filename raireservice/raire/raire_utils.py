import sys
import numpy as np

from ..core.Errors import CouldNotRuleOut


class Contest:
    def __init__(self, name, candidates, winner, total_auditable_ballots, order=None):
        '''
        Contest as seen by the assertion search. Candidates are the indices 0, ..., n-1 of the
        candidate list; 'order' is an IRV elimination order ending with 'winner'.
        '''
        self.name = name
        self.winner = winner
        self.outcome = [] if order is None else list(order)
        self.candidates = list(candidates)
        self.tot_ballots = total_auditable_ballots


def ranking(cand, ballot):
    '''
    Input:
        cand           -   index of candidate
        ballot         -   tuple of candidate indices, most preferred first

    Output:
        Returns the position of candidate 'cand' in the ranking of the
        given ballot 'ballot'. Returns -1 if 'cand' is not preferenced on the
        ballot.
    '''
    try:
        return ballot.index(cand)
    except ValueError:
        return -1


def vote_for_cand(cand, continuing, ballot):
    '''
    Input:
        cand                -   index of candidate
        continuing          -   indices of candidates still standing
        ballot              -   tuple of candidate indices, most preferred first

    Output:
        Returns 1 if the given 'ballot' is a vote for the given candidate 'cand'
        when only the candidates in 'continuing' remain, and 0 otherwise.
    '''
    for c in ballot:
        if c in continuing:
            return 1 if c == cand else 0
    return 0


def tallies(ballots, continuing, ncands):
    '''
    Vote totals of every candidate when only the candidates in 'continuing' remain.

    Input:
        ballots             -   mapping of ranking to number of ballots with that ranking
        continuing          -   indices of candidates still standing
        ncands              -   number of candidates

    Output:
        numpy array of length 'ncands'; entries for eliminated candidates are 0
    '''
    t = np.zeros(ncands, dtype=np.int64)
    for blt, n in ballots.items():
        for c in blt:
            if c in continuing:
                t[c] += n
                break
    return t


class RaireAssertion:
    ASSERTION_TYPE = None

    def __init__(self, winner, loser):
        """
        Initializes a RAIRE assertion involving a comparison between
        the tallies of a candidate labelled 'winner' and a candidate
        labelled 'loser'. This assertion 'asserts' that the tally of
        the winner is larger than the tally of the loser in some context.

        Each assertion will have an estimated 'difficulty' related to
        the anticipated number of ballot checks required to audit it.

        Each assertion will have a margin defined as the difference in
        tallies ascribed to 'winner' and 'loser'
        """
        self.winner = winner
        self.loser = loser

        self.votes_for_winner = 0
        self.votes_for_loser = 0

        self.difficulty = np.inf

        self.rules_out = set()

    @property
    def margin(self):
        return int(self.votes_for_winner - self.votes_for_loser)

    def is_vote_for_winner(self, ballot):
        """
        Returns 1 if the given ranking represents a vote for the assertion's
        winner, and 0 otherwise.
        """
        pass

    def is_vote_for_loser(self, ballot):
        """
        Returns 1 if the given ranking represents a vote for the assertion's
        loser, and 0 otherwise.
        """
        pass

    def subsumes(self, other):
        '''
        Returns true if this assertion 'subsumes' the input assertion 'other'.
        An assertion 'A' subsumes assertion 'B' if the alternate outcomes
        ruled out by 'B' is a subset of those ruled out by 'A'. If we include
        'A' in an audit, we don't need to include 'B'.
        '''
        pass

    def same_as(self, other):
        '''
        Returns True if this assertion is equal to 'other' (i.e., they
        are the same assertion), and False otherwise.
        '''
        pass

    def to_dict(self):
        pass

    @classmethod
    def from_dict(cls, d):
        '''
        Build an assertion from its JSON form, e.g.
        {"type": "NEN", "winner": 0, "loser": 2, "continuing": [0, 1, 2]}
        '''
        if d['type'] == NotEliminatedBefore.ASSERTION_TYPE:
            return NotEliminatedBefore(int(d['winner']), int(d['loser']))
        if d['type'] == NotEliminatedNext.ASSERTION_TYPE:
            return NotEliminatedNext(int(d['winner']), int(d['loser']),
                                     [int(c) for c in d['continuing']])
        raise ValueError(f"unknown assertion type {d['type']}")

    # Assertions are ordered in terms of how many alternate outcomes that
    # they are able to rule out.
    def __lt__(self, other):
        return self._rule_out_length() < other._rule_out_length()

    def __gt__(self, other):
        return self._rule_out_length() > other._rule_out_length()

    def _rule_out_length(self):
        return -1 if not self.rules_out else min([len(ro) for ro in self.rules_out])

    def display(self, stream=sys.stdout):
        print(self.to_str(), file=stream)

    def to_str(self):
        pass


class NotEliminatedBefore(RaireAssertion):
    """
    A Not-Eliminated-Before (NEB) assertion between a candidate 'winner' and
    a candidate 'loser' compares the minimum possible tally 'winner' could
    have (their first preference tally) with the maximum possible tally
    candidate 'loser' could have while 'winner' is still standing.

    We give 'winner' only those votes that rank 'winner' first.

    We give 'loser' ALL votes in which 'loser' appears in the ranking and
    'winner' does not, or 'loser' is ranked higher than 'winner'.

    This assertion "asserts" that the tally of 'winner' is larger than the
    tally of the 'loser'. This means that 'winner' could never be eliminated
    prior to 'loser'.
    """
    ASSERTION_TYPE = 'NEB'

    def is_vote_for_winner(self, ballot):
        return 1 if ranking(self.winner, ballot) == 0 else 0

    def is_vote_for_loser(self, ballot):
        w_idx = ranking(self.winner, ballot)
        l_idx = ranking(self.loser, ballot)

        return 1 if l_idx != -1 and (w_idx == -1 or l_idx < w_idx) else 0

    def same_as(self, other):
        return type(other) is NotEliminatedBefore and self.winner == other.winner \
            and self.loser == other.loser

    def subsumes(self, other):
        '''
        An NEB assertion 'A' subsumes an assertion 'other' if:
        - 'other' is not an NEB assertion
        - Both assertions have the same winner & loser
        - 'other' rules out an outcome with the tail 'Tail' and either the
          winner of this NEB assertion appears before the loser in
          'Tail' or the loser appears and the winner does not.
        '''
        if type(other) == NotEliminatedBefore:
            return False

        if self.winner == other.winner and self.loser == other.loser:
            return True

        if self.winner == other.winner and self.loser in other.continuing:
            return True

        if not(self.winner in other.continuing) and self.loser in other.continuing:
            return True

        # For all outcomes that 'other' is ruling out, this NEB
        # must rule them all out.
        for ro in other.rules_out:
            idxw = -1 if not self.winner in ro else ro.index(self.winner)
            idxl = -1 if not self.loser in ro else ro.index(self.loser)

            if idxw == idxl or (idxl < idxw):
                return False

        return True

    def to_dict(self):
        return {'type': self.ASSERTION_TYPE, 'winner': self.winner, 'loser': self.loser}

    def to_str(self):
        return "NEB,Winner,{},Loser,{},diff est {}".format(self.winner,
            self.loser, self.difficulty)


def is_suffix(lista, listb):
    """
        Returns true if listb = some_list + lista
    """
    len_lista = len(lista)
    len_listb = len(listb)

    if len_listb < len_lista:
        return False

    return tuple(listb[len_listb-len_lista:]) == tuple(lista)


class NotEliminatedNext(RaireAssertion):
    """
    A Not-Eliminated-Next (NEN) assertion between a candidate 'winner' and
    a candidate 'loser' compares the tally of the two candidates in the
    context where only the candidates in 'continuing' remain.

    We give 'winner' all votes in which they are preferenced first once
    every candidate outside 'continuing' is removed from the ranking, and
    likewise for 'loser'.

    This assertion "asserts" that the tally of the 'winner' in this context
    is larger than that of 'loser', so 'winner' is not the next candidate
    eliminated.
    """
    ASSERTION_TYPE = 'NEN'

    def __init__(self, winner, loser, continuing):
        super().__init__(winner, loser)

        # kept sorted, so that equal sets compare equal
        self.continuing = tuple(sorted(continuing))

    def is_vote_for_winner(self, ballot):
        return vote_for_cand(self.winner, self.continuing, ballot)

    def is_vote_for_loser(self, ballot):
        return vote_for_cand(self.loser, self.continuing, ballot)

    def same_as(self, other):
        return type(other) is NotEliminatedNext \
            and self.winner == other.winner \
            and self.loser == other.loser \
            and self.continuing == other.continuing

    def subsumes(self, other):
        '''
        An NEN assertion 'A' subsumes an assertion 'other' if 'other' is
        not an NEB assertion, and every outcome 'other' rules out ends with
        an outcome that 'A' rules out.
        '''
        if type(other) == NotEliminatedBefore:
            return False

        other_ro = list(other.rules_out)

        for ro in self.rules_out:
            other_ro = [o for o in other_ro if not(is_suffix(ro, o))]

        return other_ro == []

    def to_dict(self):
        return {'type': self.ASSERTION_TYPE, 'winner': self.winner, 'loser': self.loser,
                'continuing': list(self.continuing)}

    def to_str(self):
        result = "NEN,Winner,{},Loser,{},Continuing".format(self.winner,
            self.loser)

        for cand in self.continuing:
            result += ",{}".format(cand)

        result += ",diff est {}, rules out: {}".format(self.difficulty,\
            self.rules_out)
        return result


class AssertionAndDifficulty:
    '''
    An assertion in the algorithm's (index-based) form, with the difficulty and margin the
    algorithm found for it, and optionally its audit status (e.g. {"risk": 0.2}).
    '''

    def __init__(self, assertion, difficulty, margin, status=None):
        self.assertion = assertion
        self.difficulty = difficulty
        self.margin = margin
        self.status = status

    def __str__(self):
        return (f'assertion: {self.assertion.to_dict()} difficulty: {self.difficulty} '
                f'margin: {self.margin} status: {self.status}')

    def to_dict(self):
        d = {'assertion': self.assertion.to_dict(),
             'difficulty': self.difficulty,
             'margin': self.margin}
        if self.status is not None:
            d['status'] = self.status
        return d

    @classmethod
    def from_dict(cls, d):
        return cls(RaireAssertion.from_dict(d['assertion']), d['difficulty'], d['margin'],
                   d.get('status'))

    @classmethod
    def from_raire_assertion(cls, assertion):
        return cls(assertion, assertion.difficulty, assertion.margin)


class RaireNode:
    def __init__(self, tail):
        # Tail of an "imagined" elimination sequence representing the
        # outcome of an IRV election. The last candidate in the tail is
        # the "imagined" winner of the election.
        self.tail = tail # List of int (candidate indices)

        # Lowest cost assertion that, if true, can rule out any election
        # outcome that *ends* with the given tail.
        self.best_assertion = None

        # An "ancestor" of this node is a node whose tail equals the latter
        # part of self.tail (i.e., if self.tail is [0, 1, 2], the node
        # will have an ancestor with tail [1, 2].
        self.best_ancestor = None

        # If there are candidates not mentioned in self.tail, this node
        # is not a leaf and it can be expanded.
        self.expandable = True

        # Estimate of difficulty of ruling out the outcome this node
        # represents.
        self.estimate = np.inf

        # Children of this node that have already been considered (for
        # example, through diving), represented by the candidate that was
        # added to the front of self.tail when the child was created.
        self.explored = []

        # Flag to indicate if node was created as part of a dive.
        self.dive_node = False

    def is_descendent_of(self, node):
        '''
        Determines if the given 'node' is an ancestor of this node in a
        tree of possible election outcomes. A node with a tail equal to
        [a,b,c,d] has ancestors with tails [b,c,d], [c,d], and [d].
        '''
        l1 = len(self.tail)
        l2 = len(node.tail)

        if l1 <= l2: return False

        return self.tail[l1-l2:] == node.tail

    def display(self, stream=sys.stdout):
        print("{} | ".format(self.tail[0]), file=stream, end='')

        for i in range(1, len(self.tail)):
            print("{} ".format(self.tail[i]), file=stream, end='')

        print("[{}]".format(self.estimate), file=stream, end='')

        if self.best_ancestor != None:
            print(" (Best Ancestor {} | ".format(self.best_ancestor.tail[0]),
                file=stream, end='')

            for i in range(1, len(self.best_ancestor.tail)):
                print("{} ".format(self.best_ancestor.tail[i]), file=stream,
                    end='')
            print("[{}])".format(self.best_ancestor.estimate), file=stream,
                end='')

        print("", file=stream)


class RaireFrontier:
    def __init__(self):
        self.nodes = []

    def replace_descendents(self, node, log, stream=sys.stdout):
        '''
        Remove all descendents of the input 'node' from the frontier, and
        insert 'node' to the frontier in the appropriate position.

        If 'log' is true, print logging statements to given 'stream'.
        '''
        descendents = []

        if log:
            print("Replacing descendents of ", file=stream, end='')
            node.display(stream=stream)

        for i in range(len(self.nodes)):
            if self.nodes[i].is_descendent_of(node):
                descendents.append(i)

        for i in reversed(descendents):
            if log:
                print("Removing node: ", file=stream, end='')
                self.nodes[i].display(stream=stream)

            del self.nodes[i]

        self.insert_node(node)

    def insert_node(self, node):
        '''
        Insert given node into the frontier in the right position. Nodes
        that are not associated with an "invalidating" assertion are placed
        at the front of the frontier. After these nodes, nodes in frontier
        are ordered from most difficult to invalidate to easiest to
        invalidate. Leaf nodes -- nodes whose "tail" contains all candidates
        -- are placed at the end of the frontier.
        '''
        if not node.expandable:
            self.nodes.append(node)

        elif node.estimate == np.inf:
            self.nodes.insert(0, node)

        else:
            i = 0
            while i < len(self.nodes):
                if self.nodes[i].estimate <= node.estimate:
                    break
                i += 1

            self.nodes.insert(i, node)

    def display(self, stream=sys.stdout):
        for node in self.nodes:
            node.display(stream=stream)


def find_best_audit(contest, ballots, neb_matrix, node, asn_func):
    '''
    Input:
    node: RaireNode    -  A node in the tree of alternate election outcomes.
                          The node represents an election outcome that ends
                          in the sequence node.tail.

    contest: Contest   -  Contest being audited.

    ballots            -  mapping of ranking to number of ballots.

    neb_matrix         -  |Candidates| x |Candidates| dictionary where
                          neb_matrix[c1][c2] returns a NotEliminatedBefore
                          stating that c1 cannot be eliminated before c2 (if
                          one exists) and None otherwise.

    asn_func: Callable -  Function that takes the tallies of an assertion's
                          winner and loser, the number of other ballots and the
                          total number of ballots, and returns an estimate of how
                          "difficult" it will be to audit that assertion.

    Output:
    Finds the least cost assertion that can be used to rule out all election
    outcomes that end with the sequence node.tail, and assigns that assertion
    to node.best_assertion. If no such assertion can be found,
    node.best_assertion will equal None after this function is called.
    '''
    first_in_tail = node.tail[0]

    best_asrtn = None

    # Can we show that a candidate appearing later in tail must come after
    # 'first_in_tail' in the elimination sequence?
    for later_cand in node.tail[1:]:
        neb = neb_matrix[first_in_tail][later_cand]

        if neb != None and (best_asrtn is None or neb.difficulty < \
            best_asrtn.difficulty):

            best_asrtn = neb

    # Candidates not mentioned in 'tail' are assumed to have been eliminated
    # already. Can one of them not-be-eliminated-before a candidate in tail?
    eliminated = [c for c in contest.candidates if not c in node.tail]

    for cand in eliminated:
        for cand_in_tail in node.tail:
            neb = neb_matrix[cand][cand_in_tail]

            if neb != None and (best_asrtn is None or neb.difficulty < \
                best_asrtn.difficulty):

                best_asrtn = neb

    # Is there a better NEN assertion? When only the candidates in 'tail'
    # remain, 'first_in_tail' should not be the candidate with the fewest
    # votes, so it is not eliminated next.
    continuing = set(node.tail)
    tally = tallies(ballots, continuing, len(contest.candidates))
    tally_first_in_tail = int(tally[first_in_tail])

    for later_cand in node.tail[1:]:
        tally_later_cand = int(tally[later_cand])

        if tally_first_in_tail > tally_later_cand:
            estimate = asn_func(tally_first_in_tail, tally_later_cand, \
                contest.tot_ballots - (tally_first_in_tail + tally_later_cand),\
                contest.tot_ballots)

            if best_asrtn is None or estimate < best_asrtn.difficulty:
                nen = NotEliminatedNext(first_in_tail, later_cand, node.tail)

                nen.rules_out.add(tuple(node.tail))
                nen.difficulty = estimate

                nen.votes_for_winner = tally_first_in_tail
                nen.votes_for_loser = tally_later_cand

                best_asrtn = nen

    node.best_assertion = best_asrtn

    if best_asrtn != None:
        node.estimate = best_asrtn.difficulty


def manage_node(newn, frontier, lowerbound, log, stream=sys.stdout):
    '''
    Input:

    newn: RaireNode    -  A node in the tree of alternate election outcomes that
                          has just been created and evaluated, but not yet
                          added to our frontier.

    frontier           -  Current frontier of our set of alternate outcome
                          trees.

    lowerbound         -  Current lower bound on audit difficulty.

    log                -  Flag indicating if logging statements should
                          be printed during the algorithm.

    stream             -  Stream to which logging statements should
                          be printed.

    Output:

    Returns a pair: the new lower bound on audit difficulty, and a boolean
    'terminus' that is True if we do not need to continue exploring
    children of this node.

    Raises CouldNotRuleOut if 'newn' is a leaf that neither it nor any of
    its ancestors has an assertion to rule out.
    '''
    if not newn.expandable:
        # 'newn' is a leaf.
        if newn.estimate == np.inf and newn.best_ancestor.estimate == np.inf:
            if log:
                print("Found branch that cannot be pruned.", file=stream)

            raise CouldNotRuleOut(newn.tail)

        if newn.best_ancestor.estimate <= newn.estimate:
            next_lowerbound = max(lowerbound, newn.best_ancestor.estimate)
            frontier.replace_descendents(newn.best_ancestor, log, stream=stream)

            return next_lowerbound, True

        next_lowerbound = max(lowerbound, newn.estimate)
        frontier.insert_node(newn)

        if log:
            print("    Best audit ", file=stream, end='')
            newn.best_assertion.display(stream=stream)

        return next_lowerbound, True

    frontier.insert_node(newn)

    if log:
        if newn.best_assertion != None:
            print("    Best audit ", file=stream, end='')
            newn.best_assertion.display(stream=stream)
        else:
            print("    Cannot be disproved", file=stream)

    return lowerbound, False


def perform_dive(node, contest, ballots, neb_matrix, asn_func, lower_bound, \
    frontier, log, stream=sys.stdout):
    '''
    Input:
    node: RaireNode    -  A node in the tree of alternate election outcomes.
                          Starting point of dive to a leaf.

    contest: Contest   -  Contest being audited.

    ballots:           -  mapping of ranking to number of ballots.

    neb_matrix         -  see find_best_audit.

    asn_func: Callable -  see find_best_audit.

    lower_bound        -  Current lower bound on audit difficulty.

    frontier           -  Current frontier of our set of alternate outcome
                          trees.

    log, stream        -  logging flag and output stream.

    Output:
    Returns the difficulty estimate of the least-difficult-to-audit
    assertion that can be used to rule out at least one of the branches
    starting at the input 'node'. As this function dives from the given 'node'
    it will add nodes to the current frontier of our set of alternate outcome
    trees. Raises CouldNotRuleOut if the branch dived along cannot be ruled out.
    '''
    ncands = len(contest.candidates)

    rem_cands = [c for c in contest.candidates if not c in node.tail]

    # follow the reported elimination order backwards, if it is known
    next_cand = rem_cands[0]
    if contest.outcome != []:
        npos = contest.outcome.index(next_cand)

        for c in rem_cands[1:]:
            ipos = contest.outcome.index(c)

            if ipos > npos:
                next_cand = c
                npos = ipos

    newn = RaireNode([next_cand] + node.tail)
    newn.expandable = False if len(newn.tail) == ncands else True
    newn.dive_node = True

    node.explored.append(next_cand)

    # Assign a 'best ancestor' to the new node.
    newn.best_ancestor = node.best_ancestor if \
        node.best_ancestor != None and node.best_ancestor.estimate <= \
        node.estimate else node

    find_best_audit(contest, ballots, neb_matrix, newn, asn_func)

    if log:
        print("DIVE TESTED ", file=stream, end='')
        newn.display(stream=stream)

    next_lowerbound, dive_complete = manage_node(newn, frontier, lower_bound, log,
                                                 stream=stream)

    if dive_complete:
        return next_lowerbound

    return perform_dive(newn, contest, ballots, neb_matrix, asn_func, \
            next_lowerbound, frontier, log, stream=stream)
