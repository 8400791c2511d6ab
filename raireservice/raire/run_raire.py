from decimal import Decimal
import argparse
import logging
import sys

from ..core.Ballots import consolidate
from ..core.Config import Config
from ..core.Errors import RaireServiceError
from ..core.Repository import (AssertionRepository, ContestRepository, CVRRepository,
                               SummaryRepository)
from ..core.Requests import GenerateAssertionsRequest, GetAssertionsRequest
from ..core.Service import GenerateAssertionsService, GetAssertionsService
from ..formats.ColoradoRLA import ColoradoRLA
from ..formats.Export import assertions_to_json

logger = logging.getLogger(__name__)


def make_parser():
    parser = argparse.ArgumentParser(
        description='Generate IRV audit assertions from a CVR choice export.')
    parser.add_argument('-i', dest='input', required=True,
                        help='CSV with columns cvr_id,contest_id,county_id,choices')
    parser.add_argument('-n', dest='contest', default=None,
                        help='contest id to audit (default: the only contest in the file)')
    parser.add_argument('-c', dest='candidates', default=None,
                        help='comma-separated candidate names (default: names on the ballots)')
    parser.add_argument('-N', dest='total', type=int, default=None,
                        help='total auditable ballots (default: number of CVRs for the contest)')
    parser.add_argument('-t', dest='time_limit', type=float, default=None,
                        help='seconds allowed to generate assertions')
    parser.add_argument('-bp', dest='bp', action='store_true',
                        help='estimate difficulty for a ballot-polling audit')
    parser.add_argument('-r', dest='rlimit', type=str, default=None, help='risk limit')
    parser.add_argument('--config', dest='config', default=None,
                        help='JSON file of configuration parameters')
    parser.add_argument('--csv', dest='csv', action='store_true',
                        help='print the CSV report instead of JSON')
    parser.add_argument('-v', dest='verbose', action='count', default=0,
                        help='more logging; repeat for debug output')
    parser.add_argument('-q', dest='quiet', action='store_true', help='log errors only')
    return parser


def configure(args) -> Config:
    '''
    configuration from the --config file, overridden by command-line flags
    '''
    config = Config() if args.config is None else Config.from_json_file(args.config)
    if args.time_limit is not None:
        config.time_limit_seconds = args.time_limit
    if args.bp:
        config.audit_type = Config.AUDIT_TYPE.BALLOT_POLLING
    if args.rlimit is not None:
        config.risk_limit = Decimal(args.rlimit)
    if args.quiet:
        config.log_level = 'ERROR'
    elif args.verbose:
        config.log_level = 'INFO' if args.verbose == 1 else 'DEBUG'
    config.check_parameters()
    return config


def main(argv=None):
    """
    The RAIRE CLI
    """
    args = make_parser().parse_args(argv)
    config = configure(args)
    config.configure_logging(stream=sys.stderr)

    cvrs = ColoradoRLA.read_cvr_export(args.input)
    contest_ids = sorted({c.contest_id for c in cvrs})
    if args.contest is None:
        if len(contest_ids) != 1:
            logger.error('file %s holds contests %s; choose one with -n', args.input, contest_ids)
            return 2
        contest_id = contest_ids[0]
    else:
        contest_id = args.contest
    cvrs = [c for c in cvrs if c.contest_id == contest_id]

    cvr_repository = CVRRepository()
    cvr_repository.add_all(cvrs)
    contest_repository = ContestRepository()
    for record in ColoradoRLA.contests_from_cvrs(cvrs, name=contest_id):
        contest_repository.add(record)
    assertion_repository = AssertionRepository()
    summary_repository = SummaryRepository()

    if args.candidates is None:
        candidates = consolidate(cvrs).candidates
    else:
        candidates = [c.strip() for c in args.candidates.split(',')]
    total = len(cvrs) if args.total is None else args.total

    generator = GenerateAssertionsService(cvr_repository, contest_repository,
                                          assertion_repository, summary_repository, config)
    getter = GetAssertionsService(assertion_repository, summary_repository, contest_repository)
    try:
        result = generator.run(GenerateAssertionsRequest(contest_id, total, candidates,
                                                         config.time_limit_seconds))
        logger.info('%s', result)
        request = GetAssertionsRequest(contest_id, total, candidates, config.risk_limit)
        if args.csv:
            print(getter.get_assertions_csv(request), end='')
        else:
            print(assertions_to_json(getter.get_raire_solution(request), indent=2))
    except RaireServiceError as e:
        print(f'File {args.input}, Contest {contest_id}: {e.error_code}: {e.message}',
              file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
