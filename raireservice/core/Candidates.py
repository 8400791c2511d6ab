import logging
import numbers

from .Errors import CandidateReferenceError

logger = logging.getLogger(__name__)


##########################################################################################
class CandidateRegistry:
    '''
    Assigns each candidate name a stable integer index, in order of first appearance.

    Indices are dense and start at 0: the k-th distinct name registered gets index k-1.
    Registering a name that is already known returns its existing index.

    A registry is built fresh for each consolidation pass. Once every ballot has been scanned
    the pass freezes the registry; after that it can only be read (lookups in either direction),
    which is how stored assertions are translated to and from the algorithm's index space.

    Methods:
    --------
    register:
        register(name) returns the index of name, assigning the next index if name is new
    index_of:
        index_of(name) returns the index of a registered name
    name_of:
        name_of(index) returns the name registered at index
    from_names:
        build a registry from a list of names, in list order
    '''

    def __init__(self):
        self._index = {}
        self._names = []
        self._frozen = False

    def __str__(self):
        return f'candidates: {self._names} frozen: {self._frozen}'

    def __len__(self):
        return len(self._names)

    def __iter__(self):
        return iter(self._names)

    def __contains__(self, name):
        return name in self._index

    def __eq__(self, other):
        if not isinstance(other, CandidateRegistry):
            return NotImplemented
        return self._names == other._names

    @property
    def candidates(self) -> list:
        return list(self._names)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self):
        self._frozen = True
        return self

    def register(self, name: str) -> int:
        '''
        Index for `name`, assigning the next free index if `name` has not been seen.

        Parameters
        ----------
        name: str
            candidate name; must be a non-blank string

        Returns
        -------
        index: int
        '''
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f'candidate name must be a non-blank string, got {name!r}')
        if name in self._index:
            return self._index[name]
        if self._frozen:
            raise RuntimeError(f'cannot register new candidate {name!r}: registry is frozen')
        idx = len(self._names)
        self._index[name] = idx
        self._names.append(name)
        return idx

    def index_of(self, name: str) -> int:
        try:
            return self._index[name]
        except (KeyError, TypeError):
            msg = f'candidate {name!r} is not in the candidate list {self._names}'
            logger.error(msg)
            raise CandidateReferenceError(msg) from None

    def name_of(self, index: int) -> str:
        if not isinstance(index, bool) and isinstance(index, numbers.Integral) \
                and 0 <= index < len(self._names):
            return self._names[int(index)]
        msg = f'candidate index {index!r} is outside the candidate list {self._names}'
        logger.error(msg)
        raise CandidateReferenceError(msg)

    @classmethod
    def from_names(cls, names: list) -> 'CandidateRegistry':
        '''
        registry whose indices follow the order of `names`; duplicate names are an error
        '''
        reg = cls()
        for n in names:
            if n in reg:
                raise ValueError(f'duplicate candidate name {n!r}')
            reg.register(n)
        return reg

    @classmethod
    def coerce(cls, candidates) -> 'CandidateRegistry':
        '''
        accept either a registry or a list of names
        '''
        if isinstance(candidates, CandidateRegistry):
            return candidates
        return cls.from_names(list(candidates)).freeze()
