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


import numpy as np


def bp_estimate(winner, loser, other, total):
    '''
    difficulty of a ballot-polling audit of the assertion: 1/(p q^2), where p is the share of
    ballots for either candidate and q is the winner's margin among those ballots
    '''
    if winner + loser <= 0 or winner <= loser:
        return np.inf

    p = (winner+loser)/total
    q = (winner-loser)/(winner+loser)

    margin = p * (q*q)

    return 1.0/margin


def cp_estimate(winner, loser, other, total):
    '''
    difficulty of a comparison audit of the assertion: one over the diluted margin,
    total/(winner - loser)
    '''
    amargin = 2*((winner+0.5*other)/total) - 1

    return np.inf if amargin <= 0 else 1.0/amargin


DIFFICULTY_FUNCTIONS = {
    'ONE_ON_DILUTED_MARGIN': cp_estimate,
    'BALLOT_POLLING': bp_estimate,
}


def difficulty_function(audit_type):
    '''
    the difficulty estimator for an audit type, one of the keys of DIFFICULTY_FUNCTIONS
    '''
    try:
        return DIFFICULTY_FUNCTIONS[audit_type]
    except KeyError:
        raise ValueError(f'unsupported audit type {audit_type}') from None
