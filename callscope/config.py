# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Analysis configuration.

Configuration is a JSON object whose keys mirror the dataclass fields:

	{
		"include_external_callees": true,
		"keep_synthetic_nodes": false,
		"format_rule": {"package": "fmt", "function": "Println", "replacement": "Printf",
		                "specifiers": {"int": "%d", "float": "%g", "string": "%s", "bool": "%t"},
		                "append_newline": true}
	}

Missing keys keep their defaults; unknown keys are rejected.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping

from callscope.core.errors import ConfigError

# Argument categories understood by the format rule.
CATEGORIES = ("int", "float", "string", "bool")


def _default_specifiers() -> Dict[str, str]:
	return {"int": "%d", "float": "%g", "string": "%s", "bool": "%t"}


@dataclass
class FormatRuleConfig:
	"""Which call the format rule rewrites and into what."""

	package: str = "fmt"
	function: str = "Println"
	replacement: str = "Printf"
	specifiers: Dict[str, str] = field(default_factory=_default_specifiers)
	append_newline: bool = True


@dataclass
class AnalysisConfig:
	include_external_callees: bool = True
	keep_synthetic_nodes: bool = False
	format_rule: FormatRuleConfig = field(default_factory=FormatRuleConfig)


def config_from_dict(data: Mapping[str, Any]) -> AnalysisConfig:
	_check_keys(data, AnalysisConfig, "config")
	rule_data = data.get("format_rule", {})
	if not isinstance(rule_data, Mapping):
		raise ConfigError("format_rule must be an object")
	_check_keys(rule_data, FormatRuleConfig, "format_rule")
	specifiers = rule_data.get("specifiers", _default_specifiers())
	if not isinstance(specifiers, Mapping):
		raise ConfigError("format_rule.specifiers must be an object")
	for category, spec in specifiers.items():
		if category not in CATEGORIES:
			raise ConfigError(f"format_rule.specifiers: unknown category {category!r}")
		if not isinstance(spec, str) or not spec.startswith("%"):
			raise ConfigError(f"format_rule.specifiers.{category}: expected a format verb such as %d")
	rule = FormatRuleConfig(
		**{k: v for k, v in rule_data.items() if k != "specifiers"},
		specifiers=dict(specifiers),
	)
	return AnalysisConfig(
		include_external_callees=bool(data.get("include_external_callees", True)),
		keep_synthetic_nodes=bool(data.get("keep_synthetic_nodes", False)),
		format_rule=rule,
	)


def _check_keys(data: Mapping[str, Any], cls: type, where: str) -> None:
	known = {f.name for f in fields(cls)}
	unknown = sorted(set(data) - known)
	if unknown:
		raise ConfigError(f"{where}: unknown key(s) {', '.join(unknown)}")


def load_config(path: Path | str) -> AnalysisConfig:
	"""Read an AnalysisConfig from a JSON file."""
	try:
		data = json.loads(Path(path).read_text(encoding="utf-8"))
	except json.JSONDecodeError as err:
		raise ConfigError(f"{path}: invalid JSON: {err}") from err
	if not isinstance(data, dict):
		raise ConfigError(f"{path}: expected a JSON object")
	return config_from_dict(data)


__all__ = ["AnalysisConfig", "FormatRuleConfig", "CATEGORIES", "config_from_dict", "load_config"]
