"""
Tools to read CVR choice exports and contest lists from colorado-rla style CSV files
"""

import pandas as pd

from ..core.Ballots import CVRContestInfo
from ..core.Repository import ContestRecord


class ColoradoRLA:

    CVR_COLUMNS = ('cvr_id', 'contest_id', 'county_id', 'choices')
    CONTEST_COLUMNS = ('contest_id', 'county_id', 'name', 'description')

    @classmethod
    def read_cvr_frame(cls, path) -> pd.DataFrame:
        '''
        Read a CVR choice export into a dataframe of strings.

        Parameters
        ----------
        path: str or file-like
            CSV with the columns 'cvr_id', 'contest_id', 'county_id', 'choices'. 'choices' is the
            raw choice text, e.g. '["ALICE(1)","BOB(2)"]', quoted as CSV requires.

        Returns
        -------
        dataframe with one row per (CVR, contest); empty choice cells are empty strings
        '''
        df = pd.read_csv(path, dtype=str, keep_default_na=False, skipinitialspace=True)
        missing = set(cls.CVR_COLUMNS) - set(df.columns)
        assert not missing, f'CVR export is missing the columns {sorted(missing)}'
        return df[list(cls.CVR_COLUMNS)]

    @classmethod
    def read_cvr_export(cls, path) -> list:
        '''
        Read a CVR choice export into a list of CVRContestInfo, in file order.
        '''
        df = cls.read_cvr_frame(path)
        return [CVRContestInfo(r.cvr_id, r.contest_id, r.county_id, r.choices)
                for r in df.itertuples(index=False)]

    @classmethod
    def read_contests(cls, path) -> list:
        '''
        Read a contest list (columns 'contest_id', 'county_id', 'name', 'description') into a
        list of ContestRecord. A missing description means an IRV contest.
        '''
        df = pd.read_csv(path, dtype=str, keep_default_na=False, skipinitialspace=True)
        missing = set(cls.CONTEST_COLUMNS[:3]) - set(df.columns)
        assert not missing, f'contest list is missing the columns {sorted(missing)}'
        if 'description' not in df.columns:
            df['description'] = ContestRecord.IRV
        df.loc[df['description'] == '', 'description'] = ContestRecord.IRV
        return [ContestRecord(r.contest_id, r.county_id, r.name, r.description)
                for r in df[list(cls.CONTEST_COLUMNS)].itertuples(index=False)]

    @classmethod
    def contests_from_cvrs(cls, cvrs: list, name: str=None) -> list:
        '''
        one IRV ContestRecord per distinct (contest_id, county_id) in the CVRs; `name` defaults
        to the contest id
        '''
        seen = {}
        for c in cvrs:
            key = (c.contest_id, c.county_id)
            if key not in seen:
                seen[key] = ContestRecord(c.contest_id, c.county_id,
                                          str(c.contest_id) if name is None else name)
        return list(seen.values())
