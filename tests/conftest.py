import itertools

import pytest

from notekeeper.conf import NotekeeperConf
from notekeeper.repos.direct import DirectRepo


@pytest.fixture
def conf(fs):
    return NotekeeperConf(storage_dir='/notes').standardize()


@pytest.fixture
def repo(conf):
    return DirectRepo(conf)


@pytest.fixture
def nk(conf):
    with conf.instantiate() as nk:
        yield nk


@pytest.fixture
def fixed_ids(mocker):
    """Makes generated note ids predictable: note0001abcd, note0002abcd, ..."""
    return mocker.patch('shortuuid.uuid', side_effect=(f'note{i:04d}abcd' for i in itertools.count(1)))
