"""
Generating, storing and retrieving the assertions for a contest.
"""

import logging

from .Ballots import consolidate
from .Config import Config
from .Errors import (CandidateReferenceError, InvalidAssertion, MalformedBallot, RaireError,
                     RaireErrorCode, RaireServiceError)
from ..formats.Export import make_csv
from ..raire import raire

logger = logging.getLogger(__name__)


##########################################################################################
class GenerateAssertionsResult:
    '''
    a successful run of the assertion-generation algorithm, with the candidate ordering its
    indices refer to and the number of ballots rejected as malformed
    '''

    def __init__(self, raire_result, registry, rejected: int=0, total_ballots: int=0):
        self.raire_result = raire_result
        self.registry = registry
        self.rejected = rejected
        self.total_ballots = total_ballots

    def __str__(self):
        return (f'{self.raire_result} candidates: {self.registry.candidates} '
                f'ballots: {self.total_ballots} rejected: {self.rejected}')

    @property
    def winner(self) -> str:
        return self.registry.name_of(self.raire_result.winner)


class GenerateAssertionsService:
    '''
    Collects a contest's votes, runs the assertion-generation algorithm on them, and stores the
    assertions and the outcome.

    `solver` has the signature of raire.solve.
    '''

    def __init__(self, cvr_repository, contest_repository, assertion_repository,
                 summary_repository, config: Config=None, solver=raire.solve):
        self.cvr_repository = cvr_repository
        self.contest_repository = contest_repository
        self.assertion_repository = assertion_repository
        self.summary_repository = summary_repository
        self.config = Config() if config is None else config
        self.solver = solver

    def generate_assertions(self, request) -> GenerateAssertionsResult:
        '''
        Run the assertion-generation algorithm on the votes for the requested contest.

        Parameters
        ----------
        request: GenerateAssertionsRequest

        Returns
        -------
        GenerateAssertionsResult

        Raises
        ------
        RequestValidationError if the request is invalid or the contest is missing or not all IRV;
        RaireServiceError with code INVALID_TOTAL_AUDITABLE_BALLOTS if there are more votes than
        auditable ballots, NO_VOTES_PRESENT if there are none, WRONG_CANDIDATE_NAMES if the votes
        name a candidate outside the request's list;
        and the translation of the algorithm's error if it fails
        '''
        request.validate(self.contest_repository)
        contest_name = request.contest_name

        pairs = [(c.contest_id, c.county_id)
                 for c in self.contest_repository.find_by_name(contest_name)]
        rows = self.cvr_repository.find_by_contests(pairs)
        logger.debug('found %d votes for contest %s', len(rows), contest_name)

        if len(rows) > request.total_auditable_ballots:
            msg = (f'{len(rows)} votes present for contest {contest_name} but a universe size of '
                   f'{request.total_auditable_ballots} specified.')
            logger.error(msg)
            raise RaireServiceError(msg, RaireErrorCode.INVALID_TOTAL_AUDITABLE_BALLOTS)
        if not rows:
            msg = f'No votes present for contest {contest_name}.'
            logger.error(msg)
            raise RaireServiceError(msg, RaireErrorCode.NO_VOTES_PRESENT)

        try:
            ballots, registry, rejected = consolidate(rows, request.candidates,
                                                      policy=self.config.malformed_ballot_policy)
        except MalformedBallot as e:
            raise RaireServiceError(str(e), RaireErrorCode.INTERNAL_ERROR) from e

        try:
            result = self.solver(registry.candidates, ballots, request.total_auditable_ballots,
                                 request.time_limit_seconds, audit_type=self.config.audit_type)
        except RaireError as e:
            error = RaireServiceError.from_raire_error(e, registry.candidates)
            logger.error('assertion generation failed for contest %s: %s', contest_name,
                         error.message)
            raise error from e
        logger.info('generated %d assertions for contest %s; winner %s',
                    len(result.assertions), contest_name, registry.name_of(result.winner))
        return GenerateAssertionsResult(result, registry, rejected, ballots.total)

    def persist(self, result: GenerateAssertionsResult, request):
        '''
        replace the contest's stored assertions with the new ones and record the winner

        Raises RaireServiceError with code INTERNAL_ERROR if the algorithm's assertions cannot be
        converted to stored assertions
        '''
        contest_name = request.contest_name
        try:
            self.assertion_repository.translate_and_save_assertions(
                contest_name, request.total_auditable_ballots, result.registry,
                result.raire_result.assertions)
        except (InvalidAssertion, CandidateReferenceError) as e:
            msg = f'Could not store the assertions for contest {contest_name}: {e}'
            logger.error(msg)
            raise RaireServiceError(msg, RaireErrorCode.INTERNAL_ERROR) from e
        summary = self.summary_repository.get_or_create(contest_name)
        summary.update_winner(result.registry.candidates, result.raire_result.winner,
                              result.raire_result.warning_trim_timed_out)
        self.summary_repository.save(summary)

    def persist_error(self, request, error: RaireServiceError):
        '''
        record a failed run and delete the contest's stale assertions
        '''
        contest_name = request.contest_name
        self.assertion_repository.delete_by_contest_name(contest_name)
        summary = self.summary_repository.get_or_create(contest_name)
        summary.update_error(error.error_code, error.message)
        self.summary_repository.save(summary)

    def run(self, request) -> GenerateAssertionsResult:
        '''
        generate and store assertions for the requested contest; on failure record the error
        and raise a RaireServiceError
        '''
        try:
            result = self.generate_assertions(request)
            self.persist(result, request)
        except RaireServiceError as e:
            if e.error_code != RaireErrorCode.INVALID_REQUEST:
                self.persist_error(request, e)
            raise
        return result


##########################################################################################
class GetAssertionsService:
    '''
    Retrieves a contest's stored assertions, as the algorithm's JSON structure or as a CSV report.
    '''

    CANDIDATES = 'candidates'
    RISK_LIMIT = 'risk_limit'
    CONTEST = 'contest'
    TOTAL_AUDITABLE_BALLOTS = 'total_auditable_ballots'

    def __init__(self, assertion_repository, summary_repository, contest_repository=None):
        self.assertion_repository = assertion_repository
        self.summary_repository = summary_repository
        self.contest_repository = contest_repository

    def winner_index(self, request) -> int:
        '''
        index, in the request's candidate list, of the winner recorded for the contest

        Raises RaireServiceError: NO_ASSERTIONS_PRESENT if assertion generation has not run or
        failed; WRONG_CANDIDATE_NAMES if the winner is not one of the request's candidates
        '''
        summary = self.summary_repository.find_by_contest_name(request.contest_name)
        if summary is None:
            msg = f'No generate assertions summary for contest {request.contest_name}.'
            logger.debug(msg)
            raise RaireServiceError(msg, RaireErrorCode.NO_ASSERTIONS_PRESENT)
        if not summary.winner.strip():
            msg = (f'No assertions generated for contest {request.contest_name}. '
                   f'{summary.error} {summary.message}')
            logger.debug(msg)
            raise RaireServiceError(msg, RaireErrorCode.NO_ASSERTIONS_PRESENT)
        if summary.winner not in request.candidates:
            msg = (f'Inconsistent winner and candidate list. Winner: {summary.winner}, '
                   f'Candidates {request.candidates}')
            logger.error(msg)
            raise RaireServiceError(msg, RaireErrorCode.WRONG_CANDIDATE_NAMES)
        return request.candidates.index(summary.winner)

    def get_raire_solution(self, request) -> dict:
        '''
        The stored assertions for the contest in the algorithm's form, with contest metadata:
        {"metadata": {...}, "solution": {"Ok": {"assertions": [...], "difficulty": ...,
        "margin": ..., "winner": ..., "num_candidates": ...}}}
        '''
        request.validate(self.contest_repository)
        winner = self.winner_index(request)
        assertions = self.assertion_repository.get_assertions_or_raise(request.contest_name)

        translated = [a.to_indexed(request.candidates) for a in assertions]
        logger.debug('%d assertions for contest %s converted', len(translated),
                     request.contest_name)

        metadata = {self.CANDIDATES: list(request.candidates),
                    self.RISK_LIMIT: request.risk_limit,
                    self.CONTEST: request.contest_name,
                    self.TOTAL_AUDITABLE_BALLOTS: request.total_auditable_ballots}
        return {'metadata': metadata,
                'solution': {'Ok': {
                    'assertions': [a.to_dict() for a in translated],
                    'difficulty': max([a.difficulty for a in translated], default=0.0),
                    'margin': min([a.margin for a in translated], default=0),
                    'winner': winner,
                    'num_candidates': len(request.candidates)}}}

    def get_assertions_csv(self, request) -> str:
        '''
        CSV report of the stored assertions for the contest, rows in order of assertion id
        '''
        request.validate(self.contest_repository)
        summary = self.summary_repository.find_by_contest_name(request.contest_name)
        if summary is None:
            msg = f'No generate assertions summary for contest {request.contest_name}.'
            logger.debug(msg)
            raise RaireServiceError(msg, RaireErrorCode.NO_ASSERTIONS_PRESENT)
        self.assertion_repository.get_assertions_or_raise(request.contest_name)
        assertions = [a for _, a in self.assertion_repository.find_with_ids(request.contest_name)]
        winner = summary.winner if summary.winner.strip() else summary.UNKNOWN_WINNER
        return make_csv(request.contest_name, request.candidates, winner,
                        request.total_auditable_ballots, request.risk_limit, assertions)
