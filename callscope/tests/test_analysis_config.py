import json

import pytest

from callscope.config import AnalysisConfig, config_from_dict, load_config
from callscope.core.errors import ConfigError


def test_defaults():
	config = config_from_dict({})
	assert config == AnalysisConfig()
	assert config.format_rule.specifiers["float"] == "%g"
	assert config.format_rule.append_newline


def test_partial_format_rule_keeps_other_defaults():
	config = config_from_dict({"keep_synthetic_nodes": True, "format_rule": {"function": "Print"}})
	assert config.keep_synthetic_nodes
	assert config.include_external_callees
	assert config.format_rule.function == "Print"
	assert config.format_rule.replacement == "Printf"


@pytest.mark.parametrize(
	("data", "message"),
	[
		({"format_rule": {"specifiers": {"complex": "%v"}}}, "unknown category 'complex'"),
		({"format_rule": {"specifiers": {"int": "d"}}}, "expected a format verb"),
		({"format_rule": {"verbose": True}}, "format_rule: unknown key(s) verbose"),
		({"format_rule": []}, "format_rule must be an object"),
	],
)
def test_invalid_config(data, message):
	with pytest.raises(ConfigError) as excinfo:
		config_from_dict(data)
	assert message in str(excinfo.value)


def test_load_config(tmp_path):
	path = tmp_path / "config.json"
	path.write_text(json.dumps({"include_external_callees": False}))
	assert not load_config(path).include_external_callees

	path.write_text("{not json")
	with pytest.raises(ConfigError, match="invalid JSON"):
		load_config(path)

	path.write_text("[]")
	with pytest.raises(ConfigError, match="expected a JSON object"):
		load_config(path)
