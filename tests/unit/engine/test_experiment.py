"""Tests for experiment descriptions and session expansion."""

import json

import pytest

from cbmsim.engine import Experiment, Trial
from cbmsim.errors import ConfigurationError

TRIAL_DEFS = {
    "CS_US": {
        "use_cs": True, "cs_onset": 10, "cs_offset": 15,
        "cs_percent": 100, "use_us": True, "us_onset": 14,
    },
    "CS_only": {
        "use_cs": True, "cs_onset": 10, "cs_offset": 15,
        "cs_percent": 100, "use_us": False, "us_onset": 0,
    },
    "US_only": {
        "use_cs": False, "cs_onset": 10, "cs_offset": 15,
        "cs_percent": 0, "use_us": True, "us_onset": 14,
    },
}


class TestTrial:
    def test_cs_length(self):
        assert Trial("t", cs_onset=10, cs_offset=15).cs_length == 5

    def test_rejects_inverted_window(self):
        with pytest.raises(ConfigurationError, match="CS window"):
            Trial("t", cs_onset=15, cs_offset=10)

    def test_rejects_cs_percent_out_of_range(self):
        with pytest.raises(ConfigurationError, match="cs_percent"):
            Trial("t", cs_percent=120.0)

    def test_immutable(self):
        trial = Trial("t")
        with pytest.raises(AttributeError):
            trial.use_us = True


class TestSessionExpansion:
    def test_blocks_and_trials(self):
        experiment = Experiment.from_session(
            TRIAL_DEFS,
            {"acquisition": [["CS_US", 2], ["CS_only", 1]]},
            [["acquisition", 2], ["US_only", 3]],
        )
        names = [t.name for t in experiment]
        assert names == ["CS_US", "CS_US", "CS_only"] * 2 + ["US_only"] * 3
        assert experiment.num_trials == len(experiment) == 9
        assert experiment[0].use_us and not experiment[2].use_us

    def test_unknown_session_entry(self):
        with pytest.raises(ConfigurationError, match="neither a block nor a trial"):
            Experiment.from_session(TRIAL_DEFS, {}, [["probe", 1]])

    def test_block_references_unknown_trial(self):
        with pytest.raises(ConfigurationError, match="unknown trial"):
            Experiment.from_session(TRIAL_DEFS, {"b": [["missing", 1]]}, [["b", 1]])

    def test_zero_count(self):
        experiment = Experiment.from_session(TRIAL_DEFS, {}, [["CS_US", 0]])
        assert experiment.num_trials == 0


class TestLoading:
    def test_from_dict_explicit_trials(self):
        experiment = Experiment.from_dict(
            {"trials": [{"name": "a"}, {"name": "b", "use_us": True, "us_onset": 3990}]}
        )
        assert [t.name for t in experiment] == ["a", "b"]
        assert experiment[1].us_onset == 3990

    def test_from_dict_requires_sections(self):
        with pytest.raises(ConfigurationError, match="missing"):
            Experiment.from_dict({"trial_defs": TRIAL_DEFS})

    def test_json_roundtrip(self, tmp_path):
        experiment = Experiment.from_session(TRIAL_DEFS, {}, [["CS_US", 2], ["CS_only", 1]])
        path = tmp_path / "experiment.json"
        path.write_text(json.dumps(experiment.to_dict()))
        assert Experiment.from_json(path) == experiment

    def test_session_description_from_json(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text(
            json.dumps({"trial_defs": TRIAL_DEFS, "blocks": {}, "session": [["CS_only", 4]]})
        )
        assert Experiment.from_json(path).num_trials == 4
