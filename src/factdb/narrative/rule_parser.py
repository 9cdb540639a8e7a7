""" Narrative Rule Parsing """

import os
import logging
import itertools
import importlib.resources
from collections.abc import Mapping, Sequence
from typing import Any, Optional, Union, TextIO

import numpy as np
import toml # type: ignore

from factdb import config, facts, util
from . import director

logger = logging.getLogger(__name__)

OR_TOKEN = "||"

ACTION_RANDOM_TEXT = "RandomText"
ACTION_ADD_GLOBAL_FACT = "AddGlobalFact"
ACTION_ADD_ENTITY_FACT = "AddEntityFact"


def parse_number(data:str) -> Optional[float]:
    try:
        return float(data)
    except ValueError:
        return None


def parse_criterion(cri:str) -> director.Criterion:

    if not isinstance(cri, str):
        raise ValueError(f'criterion must be a string, got {cri!r}')

    # CRITERION := KEY | KEY "!" | KEY OP NUMBER | KEY "=" STRING
    # OP := "<" | ">" | "="

    tokens = cri.split()

    if len(tokens) == 1:
        # truthy case
        return director.Criterion(tokens[0], 1., 1.)

    elif len(tokens) == 2:
        key, op = tokens
        if op != "!":
            raise ValueError(f'bad operator "{op}" in criterion "{cri}", expected "!"')
        return director.Criterion(key, 0., 0.)

    elif len(tokens) == 3:
        key, op, rhs = tokens
        value = parse_number(rhs)
        if value is not None:
            value = facts.fact_value(value)
            if op == "<":
                return director.Criterion(key, -np.inf, value)
            elif op == ">":
                return director.Criterion(key, value, np.inf)
            elif op == "=":
                return director.Criterion(key, value, value)
            else:
                raise ValueError(f'bad operator "{op}" in criterion "{cri}", expected one of "<", ">", "="')

        # string literal case
        if op != "=":
            raise ValueError(f'bad operator "{op}" for string value in criterion "{cri}", expected "="')
        h = facts.fact_str_hash(rhs)
        return director.Criterion(key, h, h)

    raise ValueError(f'criterion "{cri}" must have 1, 2 or 3 terms, got {len(tokens)}')


def parse_criteria(concept:director.Concept, criteria_data:Sequence[str]) -> list[director.Criteria]:
    """ Parses a rule's criteria into one Criteria per combination of OR
    alternatives.

    Any criterion containing "||" is a group of alternatives. Every other
    criterion is required. The result is the cartesian product of the
    groups, each combination followed by the required criteria, with the
    first group varying slowest. """

    alts:list[list[director.Criterion]] = []
    core:list[director.Criterion] = []
    for cri in criteria_data:
        if isinstance(cri, str) and OR_TOKEN in cri:
            alts.append([parse_criterion(alt) for alt in cri.split(OR_TOKEN)])
        else:
            core.append(parse_criterion(cri))

    return [
        director.Criteria(concept, tuple(combination) + tuple(core))
        for combination in itertools.product(*alts)
    ]


def load_criteria(concept:director.Concept, criteria_data:Sequence[str]) -> director.Criteria:
    """ Parses a plain list of criterion strings into a single Criteria.

    Useful for content outside of rule documents that needs a yes/no test
    (e.g. evolution requirements). OR groups are not allowed. """

    if isinstance(criteria_data, str) or not isinstance(criteria_data, Sequence):
        raise ValueError(f'criteria must be a list of strings, got {criteria_data!r}')
    for cri in criteria_data:
        if isinstance(cri, str) and OR_TOKEN in cri:
            raise ValueError(f'"{OR_TOKEN}" is only allowed in rule criteria, got "{cri}"')
    return director.Criteria(concept, tuple(parse_criterion(cri) for cri in criteria_data))


def parse_concept(name:Any) -> director.Concept:
    if not isinstance(name, str):
        raise ValueError(f'concept must be a string, got {name!r}')
    try:
        return director.Concept[util.camel_to_snake(name).upper()]
    except KeyError as e:
        raise ValueError(f'unknown concept "{name}"') from e


def _parse_fact_action(act:str, tokens:Sequence[str]) -> tuple[str, Optional[float]]:
    if len(tokens) not in (2, 3):
        raise ValueError(f'action "{act}" must be "{tokens[0]} KEY [TTL_SECONDS]"')
    ttl:Optional[float] = None
    if len(tokens) == 3:
        ttl = parse_number(tokens[2])
        if ttl is None or not ttl >= 0.:
            raise ValueError(f'bad ttl "{tokens[2]}" in action "{act}"')
    return tokens[1], ttl


def parse_action(act:str) -> director.Action:
    if not isinstance(act, str):
        raise ValueError(f'action must be a string, got {act!r}')

    tokens = act.split()
    if len(tokens) == 0:
        raise ValueError('empty action')

    action_name = tokens[0]
    if action_name == ACTION_RANDOM_TEXT:
        rest = act.split(None, 1)[1] if len(tokens) > 1 else ""
        choices = tuple(c.strip() for c in rest.split(",") if c.strip())
        if len(choices) == 0:
            raise ValueError(f'action "{act}" has no text choices')
        return director.RandomText(choices)
    elif action_name == ACTION_ADD_GLOBAL_FACT:
        key, ttl = _parse_fact_action(act, tokens)
        return director.AddGlobalFact(key, 1., ttl)
    elif action_name == ACTION_ADD_ENTITY_FACT:
        key, ttl = _parse_fact_action(act, tokens)
        return director.AddEntityFact(key, 1., ttl)
    else:
        raise ValueError(f'unknown action "{action_name}" in "{act}"')


def raw_action_to_action_set(action_data:Sequence[str]) -> director.ActionSet:
    return director.ActionSet(tuple(parse_action(act) for act in action_data))


def _string_list(record:Mapping[str, Any], field:str, record_id:str, default:Optional[list]=None) -> list[str]:
    if field not in record:
        if default is None:
            raise ValueError(f'no {field} in {record_id}')
        return default
    value = record[field]
    if not isinstance(value, list) or not all(isinstance(x, str) for x in value):
        raise ValueError(f'{field} for {record_id} must be a list of strings')
    return value


def _record_id(record:Any, kind:str) -> str:
    if not isinstance(record, Mapping):
        raise ValueError(f'{kind} entries must be tables, got {record!r}')
    if "id" not in record or not isinstance(record["id"], str):
        raise ValueError(f'missing or bad id in {kind} {record!r}')
    return record["id"]


def _split_entries(rule_data:Mapping[str, Any]) -> tuple[list[Any], list[Any]]:
    """ Collects response and rule records from either top level "response"
    and "rule" arrays or a flat "entries" array of tagged records. """

    if not isinstance(rule_data, Mapping):
        raise ValueError(f'rule data must be a table, got {rule_data!r}')
    for field in ("response", "rule", "entries"):
        if field in rule_data and not isinstance(rule_data[field], list):
            raise ValueError(f'{field} must be a list of tables')

    response_data:list[Any] = list(rule_data.get("response", []))
    rule_data_list:list[Any] = list(rule_data.get("rule", []))
    for entry in rule_data.get("entries", []):
        if not isinstance(entry, Mapping) or len(entry) != 1:
            raise ValueError(f'entries must each have exactly one of "Response" or "Rule", got {entry!r}')
        ((kind, record),) = entry.items()
        if kind == "Response":
            response_data.append(record)
        elif kind == "Rule":
            rule_data_list.append(record)
        else:
            raise ValueError(f'unknown entry kind "{kind}", expected "Response" or "Rule"')

    return response_data, rule_data_list


def loads(data:str) -> director.RuleSet:
    """
    Loads rules from a toml string into a rule set.

    Parameters
    ----------
    data : str
        toml encoded rule data

    Returns
    -------
    out : director.RuleSet
        rule set loaded with rules as parsed from the input
    """

    rule_data = toml.loads(data)
    return loadd(rule_data)


def load(f:Union[str, os.PathLike, TextIO]) -> director.RuleSet:
    """ Loads rules from a toml file, given as a path or open file. """
    return loadd(toml.load(f))


def load_default() -> director.RuleSet:
    """ Loads the rule document packaged with factdb, as configured by
    Settings.narrative.RULES """
    return loads(importlib.resources.read_text("factdb.data", config.Settings.narrative.RULES))


def loadd(rule_data:Mapping[str, Any]) -> director.RuleSet:
    """
    Loads rules from a rule data dict into a rule set.

    Parameters
    ----------
    rule_data : dict
        deserialized rule document. Either top level "response" and "rule"
        lists or an "entries" list of {"Response": ...} / {"Rule": ...}
        tables.

    Returns
    -------
    out : director.RuleSet
        rule set loaded with rules as parsed from the input

    Raises
    ------
    ValueError
        if any part of the document is malformed
    """

    response_data, rule_data_list = _split_entries(rule_data)

    responses:dict[str, director.Response] = {}
    for response in response_data:
        response_id = _record_id(response, "response")
        if response_id in responses:
            raise ValueError(f'duplicate response id {response_id}')
        responses[response_id] = director.Response(
            raw_action_to_action_set(_string_list(response, "now", response_id)),
            raw_action_to_action_set(_string_list(response, "after", response_id, default=[])),
        )

    rules:list[director.Rule] = []
    for rule in rule_data_list:
        rule_id = _record_id(rule, "rule")

        if "criteria" not in rule or not isinstance(rule["criteria"], Mapping):
            raise ValueError(f'missing or bad criteria in rule {rule_id}')
        if "concept" not in rule["criteria"]:
            raise ValueError(f'no concept in criteria for rule {rule_id}')
        concept = parse_concept(rule["criteria"]["concept"])
        criteria_data = _string_list(rule["criteria"], "facts", rule_id, default=[])

        if "response" not in rule or not isinstance(rule["response"], str):
            raise ValueError(f'missing or bad response in rule {rule_id}')
        if rule["response"] not in responses:
            raise ValueError(f'rule {rule_id} had unknown response {rule["response"]}')
        response = responses[rule["response"]]

        # apply_facts is reserved, accepted but unused
        if "apply_facts" in rule and not isinstance(rule["apply_facts"], list):
            raise ValueError(f'apply_facts for {rule_id} must be a list')

        for criteria in parse_criteria(concept, criteria_data):
            rules.append(director.Rule(rule_id, criteria, response))

    rule_set = director.RuleSet(rules)
    logger.info(f'loaded {len(rule_data_list)} rules ({len(rule_set)} with alternatives expanded) and {len(responses)} responses')
    return rule_set
