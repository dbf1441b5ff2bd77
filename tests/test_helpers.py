import json
import logging
from pathlib import Path

import pytest
import yaml

from drrip.policies.base import LRUPolicy
from drrip.policies.drrip import BIPPolicy, DRRIPPolicy, SRRIPPolicy
from drrip.components.set_dueling import HashedLeaderSelector
from drrip.utils.helpers import (
    create_policy_from_config,
    format_number,
    load_config,
    save_config,
    save_results,
    setup_logging,
)

DEFAULT_CONFIG = Path(__file__).parent.parent / "config" / "default.yaml"


def test_load_default_config():
    config = load_config(DEFAULT_CONFIG)
    assert config['cache']['num_ways'] == 16
    assert 'drrip' in config['policies']


def test_missing_config(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_config_round_trip(tmp_path):
    path = tmp_path / "sub" / "config.yaml"
    save_config({'cache': {'num_sets': 64}}, path)
    assert load_config(path) == {'cache': {'num_sets': 64}}


def test_empty_config(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(path) == {}


@pytest.mark.parametrize("name,cls", [
    ('drrip', DRRIPPolicy),
    ('SRRIP', SRRIPPolicy),
    ('bip', BIPPolicy),
    ('lru', LRUPolicy),
])
def test_create_policy(name, cls):
    config = {'cache': {'num_sets': 32, 'num_ways': 8}}
    policy = create_policy_from_config(config, name)
    assert type(policy) is cls
    assert policy.num_sets == 32
    assert policy.num_ways == 8


def test_policy_section_overrides_cache():
    config = {'cache': {'num_sets': 256, 'num_ways': 8},
              'drrip': {'leader_selector': 'hashed', 'constituency_size': 32,
                        'psel_bits': 6}}
    policy = create_policy_from_config(config, 'drrip')
    assert isinstance(policy.leader_selector, HashedLeaderSelector)
    assert policy.psel_max == 63


def test_unknown_policy():
    with pytest.raises(ValueError):
        create_policy_from_config({}, 'ship')


def test_save_results(tmp_path):
    results = {'trace': 'x', 'policy_results': {'DRRIP': {'hit_rate': 0.5}}}
    paths = save_results(results, tmp_path, name='loop', formats=('json', 'yaml'))

    assert set(paths) == {'json', 'yaml'}
    assert paths['json'].name.startswith('loop_')
    assert json.loads(paths['json'].read_text())['trace'] == 'x'
    assert yaml.safe_load(paths['yaml'].read_text()) == results


def test_save_results_defaults_to_json(tmp_path):
    paths = save_results({'a': 1}, tmp_path / 'out')
    assert list(paths) == ['json']
    assert paths['json'].parent == tmp_path / 'out'


def test_setup_logging(tmp_path):
    log_file = tmp_path / "logs" / "run.log"
    logger = setup_logging("DEBUG", log_file)
    try:
        assert logger.name == "drrip"
        logging.getLogger("drrip.test").debug("hello from test")
        for handler in logger.handlers:
            handler.flush()
        assert "hello from test" in log_file.read_text()
    finally:
        for handler in list(logger.handlers):
            if isinstance(handler, logging.FileHandler):
                logger.removeHandler(handler)
                handler.close()
        logger.setLevel(logging.NOTSET)


def test_format_number():
    assert format_number(1500) == "1.50K"
    assert format_number(2_000_000, precision=1) == "2.0M"
