import json
import logging
import numbers
from decimal import Decimal

from ..formats.Export import NpEncoder

logger = logging.getLogger(__name__)


##########################################################################################
class Config:
    '''
    Parameters for generating and reporting assertions.
    Methods for reading, checking and logging parameters, and for configuring logging.
    '''

    ATTRIBUTES = ('time_limit_seconds', 'audit_type', 'risk_limit', 'log_level', 'log_file',
                  'malformed_ballot_policy')

    class AUDIT_TYPE:
        '''
        kinds of audit, which determine how the difficulty of an assertion is estimated
        '''
        AUDIT_TYPES = (ONE_ON_DILUTED_MARGIN:= 'ONE_ON_DILUTED_MARGIN',
                       BALLOT_POLLING:= 'BALLOT_POLLING'
                      )

    class MALFORMED_BALLOT_POLICY:
        '''
        what to do with a ballot whose choices cannot be parsed
        '''
        POLICIES = (REJECT:= 'reject',   # drop the ballot, log it and count it
                    RAISE:= 'raise'      # abort consolidation of the contest
                   )

    LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

    def __init__(
                 self,
                 time_limit_seconds: float=10.0,
                 audit_type: str=AUDIT_TYPE.ONE_ON_DILUTED_MARGIN,
                 risk_limit: Decimal=Decimal('0.03'),
                 log_level: str='WARNING',
                 log_file: str=None,
                 malformed_ballot_policy: str=MALFORMED_BALLOT_POLICY.REJECT):
        self.time_limit_seconds = time_limit_seconds
        self.audit_type = audit_type
        self.risk_limit = risk_limit
        self.log_level = log_level
        self.log_file = log_file
        self.malformed_ballot_policy = malformed_ballot_policy

    def __str__(self):
        return str(self.__dict__)

    def check_parameters(self):
        '''
        Check whether the parameters are valid; complain if not.

        Side effects
        ------------
        raises ValueError if a parameter fails its test
        '''
        try:
            assert isinstance(self.time_limit_seconds, numbers.Real) \
                and not isinstance(self.time_limit_seconds, bool) \
                and self.time_limit_seconds > 0, \
                f'time limit {self.time_limit_seconds} must be positive'
            assert self.audit_type in Config.AUDIT_TYPE.AUDIT_TYPES, \
                f'unsupported audit type {self.audit_type}'
            assert isinstance(self.risk_limit, Decimal), \
                f'risk limit {self.risk_limit!r} must be a Decimal'
            assert 0 <= self.risk_limit <= 1, f'risk limit {self.risk_limit} outside [0, 1]'
            assert self.log_level in Config.LOG_LEVELS, f'unknown log level {self.log_level}'
            assert self.malformed_ballot_policy in Config.MALFORMED_BALLOT_POLICY.POLICIES, \
                f'unknown malformed-ballot policy {self.malformed_ballot_policy}'
        except AssertionError as e:
            logger.error('invalid configuration: %s', e)
            raise ValueError(str(e)) from None

    def write_parameters(self, log_file: str=None):
        '''
        Write the parameters as a json structure to log_file (default: self.log_file)
        '''
        log_file = log_file or self.log_file
        if log_file is None:
            raise ValueError('no log file given')
        with open(log_file, 'w') as f:
            f.write(json.dumps({'Config': self.to_dict()}, cls=NpEncoder))

    def configure_logging(self, stream=None):
        '''
        set the level and format of the root logger
        '''
        logging.basicConfig(level=getattr(logging, self.log_level), stream=stream,
                            format='%(asctime)s %(name)s %(levelname)s: %(message)s',
                            force=True)

    def to_dict(self) -> dict:
        return {a: getattr(self, a) for a in Config.ATTRIBUTES}

    @classmethod
    def from_dict(cls, d: dict=None) -> 'Config':
        '''
        make a Config object from a dict of attributes; unknown attributes are an error
        '''
        d = dict(d or {})
        unknown = set(d) - set(Config.ATTRIBUTES)
        if unknown:
            raise ValueError(f'unknown configuration parameters {sorted(unknown)}')
        if 'risk_limit' in d and d['risk_limit'] is not None:
            d['risk_limit'] = Decimal(str(d['risk_limit']))
        c = Config(**d)
        c.check_parameters()
        return c

    @classmethod
    def from_json_file(cls, path: str) -> 'Config':
        with open(path) as f:
            return cls.from_dict(json.load(f))
