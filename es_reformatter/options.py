"""Formatting options, the defaults, and merging user supplied options over them"""

import copy
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pydantic

from .typedefs import NodeType, PositionLabel

if TYPE_CHECKING:
	from .typedefs import OptionsMapping

logger = logging.getLogger(__name__)

# The shape users write their options in, any of it can be left out
DEFAULT_OPTIONS: 'OptionsMapping' = {
	'indent': {
		'value': '    ',
		'FunctionDeclaration': True,
		'ObjectExpression': True,
		'IfStatement': True,
		'VariableDeclarator': False,
	},
	'lineBreak': {
		'value': '\n',
		'keepEmptyLines': True,
		'before': {
			'AssignmentExpression': True,
			'BlockStatement': False,
			'BlockStatementClosingBrace': False,
			'CallExpression': True,
			'FunctionDeclaration': True,
			'FunctionDeclarationClosingBrace': True,
			'FunctionDeclarationOpeningBrace': False,
			'IfOpeningBrace': False,
			'IfClosingBrace': True,
			'ElseOpeningBrace': False,
			'ElseClosingBrace': True,
			'ElseIfOpeningBrace': False,
			'ElseIfClosingBrace': True,
			'IfStatement': True,
			'ObjectExpressionClosingBrace': True,
			'Property': True,
			'ReturnStatement': True,
			'VariableName': True,
			'VariableValue': False,
			'VariableDeclaration': True,
		},
		'after': {
			'AssignmentExpression': True,
			'BlockStatement': False,
			'BlockStatementClosingBrace': False,
			'CallExpression': True,
			'FunctionDeclaration': False,
			'FunctionDeclarationClosingBrace': True,
			'FunctionDeclarationOpeningBrace': True,
			'IfOpeningBrace': True,
			'IfClosingBrace': True,
			'ElseOpeningBrace': True,
			'ElseClosingBrace': True,
			'ElseIfOpeningBrace': True,
			'ElseIfClosingBrace': True,
			'IfStatement': True,
			'ObjectExpressionOpeningBrace': True,
			'Property': False,
			'ReturnStatement': True,
		},
	},
	'whiteSpace': {
		'value': ' ',
		'removeTrailing': True,
		'before': {
			'ArgumentComma': False,
			'ArgumentList': False,
			'AssignmentOperator': True,
			'BinaryExpressionOperator': True,
			'FunctionDeclarationClosingBrace': True,
			'FunctionDeclarationOpeningBrace': True,
			'IfOpeningBrace': True,
			'IfClosingBrace': False,
			'ElseOpeningBrace': True,
			'ElseClosingBrace': False,
			'ElseIfOpeningBrace': True,
			'ElseIfClosingBrace': False,
			'IfTest': True,
			'LineComment': True,
			'PropertyValue': True,
			'ParameterComma': False,
			'ParameterList': False,
			'VariableValue': True,
		},
		'after': {
			'ArgumentComma': True,
			'ArgumentList': False,
			'AssignmentOperator': True,
			'BinaryExpressionOperator': True,
			'FunctionName': False,
			'IfOpeningBrace': False,
			'IfClosingBrace': True,
			'ElseOpeningBrace': False,
			'ElseClosingBrace': False,
			'ElseIfOpeningBrace': False,
			'ElseIfClosingBrace': False,
			'IfTest': True,
			'PropertyName': True,
			'ParameterComma': True,
			'ParameterList': False,
			'VariableName': True,
			'VarToken': True,
		},
	},
}


class PolicyTable(pydantic.BaseModel, frozen=True):
	"""Whether something is needed before/after a token playing a certain role, missing labels mean no"""

	before: dict[PositionLabel, bool] = pydantic.Field(default_factory=dict)
	after: dict[PositionLabel, bool] = pydantic.Field(default_factory=dict)


class IndentOptions(pydantic.BaseModel, frozen=True):
	value: str = '    '
	triggers: dict[NodeType, bool] = pydantic.Field(default_factory=dict)
	"""Node types whose direct children get one more level of indentation"""

	@pydantic.model_validator(mode='before')
	@classmethod
	def _collect_triggers(cls, data: Any) -> Any:
		# {"value": "\t", "IfStatement": true} is how people write it, so fold the node types into triggers
		if not isinstance(data, Mapping):
			return data
		data = dict(data)
		triggers = dict(data.get('triggers') or {})
		for key in list(data):
			if key not in {'value', 'triggers'}:
				value = data.pop(key)
				if isinstance(value, bool):
					triggers[key] = value
		data['triggers'] = triggers
		return data

	def is_trigger(self, node_type: 'NodeType') -> bool:
		return bool(self.triggers.get(node_type))


class LineBreakOptions(PolicyTable, frozen=True, populate_by_name=True):
	value: str = '\n'
	keep_empty_lines: bool = pydantic.Field(True, alias='keepEmptyLines')


class WhiteSpaceOptions(PolicyTable, frozen=True, populate_by_name=True):
	value: str = ' '
	remove_trailing: bool = pydantic.Field(True, alias='removeTrailing')


class Options(pydantic.BaseModel, frozen=True, populate_by_name=True):
	indent: IndentOptions = pydantic.Field(default_factory=IndentOptions)
	line_break: LineBreakOptions = pydantic.Field(default_factory=LineBreakOptions, alias='lineBreak')
	white_space: WhiteSpaceOptions = pydantic.Field(default_factory=WhiteSpaceOptions, alias='whiteSpace')


def deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
	"""Returns a copy of base with overrides merged in, nested mappings are merged rather than replaced"""
	merged = copy.deepcopy(dict(base))
	for key, value in overrides.items():
		existing = merged.get(key)
		if isinstance(existing, Mapping) and isinstance(value, Mapping):
			merged[key] = deep_merge(existing, value)
		else:
			merged[key] = copy.deepcopy(value)
	return merged


def merge_options(overrides: 'Options | Mapping[str, Any] | None' = None) -> Options:
	"""Options with the defaults filled in for anything overrides leaves out

	Raises:
		pydantic.ValidationError: If something has the wrong type"""
	if isinstance(overrides, Options):
		return overrides
	merged = deep_merge(DEFAULT_OPTIONS, overrides or {})
	return Options.model_validate(merged)


def load_options(path: Path) -> Options:
	"""Reads options from a JSON file, merged over the defaults"""
	overrides = pydantic.TypeAdapter(dict[str, Any]).validate_json(path.read_bytes())
	logger.debug('Loaded options from %s: %s', path, overrides)
	return merge_options(overrides)
