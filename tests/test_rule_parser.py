""" Test cases for loading rule documents """

import pytest

from factdb import narrative
from factdb.narrative import rule_parser, director

from . import EXAMPLE_RULES

def _or_rule_data(*criteria:str) -> dict:
    return {
        "response": [{"id": "OrRule", "now": ["RandomText or"]}],
        "rule": [{
            "id": "OrRule",
            "criteria": {"concept": "think_idle", "facts": list(criteria)},
            "response": "OrRule",
        }],
    }

def test_parse_eval():
    rule_set = rule_parser.loads(EXAMPLE_RULES)
    assert len(rule_set) == 7

    # most specific first, otherwise in load order
    assert [r.id for r in rule_set] == [
        "Query Facts",
        "GreetRaining",
        "LunchTime",
        "InsertGlobalFact",
        "InsertExpiringGlobalFact",
        "InsertEntityFact",
        "Greet",
    ]

    rule = rule_set.rules[3]
    assert rule.criteria.concept == narrative.Concept.THINK_IDLE
    assert [c.key for c in rule.criteria.predicates] == ["DoGlobalFact", "NewGlobalFact"]
    assert rule.response.now.actions == (
        director.RandomText(("global",)),
        director.AddGlobalFact("NewGlobalFact", 1., None),
    )
    assert len(rule.response.after) == 0

def test_or_rule():
    rule_set = rule_parser.loadd(_or_rule_data("A || B", "C || D", "E"))

    # A C E, A D E, B C E, B D E
    assert len(rule_set) == 4
    combos = ["".join(c.key for c in r.criteria.predicates) for r in rule_set]
    assert combos == ["ACE", "ADE", "BCE", "BDE"]

    # every variant shares the id and the response
    assert all(r.id == "OrRule" for r in rule_set)
    assert all(r.response is rule_set.rules[0].response for r in rule_set)

def test_or_rule_sizes():
    rule_set = rule_parser.loadd(_or_rule_data("A || B || C", "D < 2 || E > 3", "F", "G !", "H = 4"))
    assert len(rule_set) == 3 * 2
    assert all(len(r.criteria) == 3 + 2 for r in rule_set)

    # alternatives keep their own comparison
    second = rule_set.rules[1].criteria.predicates[1]
    assert second.key == "E"
    assert second.lower == 3.

def test_or_rule_bad_alternative():
    with pytest.raises(ValueError):
        rule_parser.loadd(_or_rule_data("A || ", "E"))
    with pytest.raises(ValueError):
        rule_parser.loadd(_or_rule_data("A || B ?"))

def test_rules_sorted_by_criterion_count():
    rule_set = rule_parser.loadd({
        "response": [{"id": "Response", "now": ["RandomText response1"]}],
        "rule": [
            {"id": "Double", "criteria": {"concept": "think_idle", "facts": ["A", "B"]}, "response": "Response"},
            {"id": "Single", "criteria": {"concept": "think_idle", "facts": ["A || B"]}, "response": "Response"},
            {"id": "Triple", "criteria": {"concept": "think_idle", "facts": ["A", "B", "C"]}, "response": "Response"},
        ],
    })

    assert [r.id for r in rule_set] == ["Triple", "Double", "Single", "Single"]

def test_entries_format():
    rule_set = rule_parser.loadd({
        "entries": [
            {"Response": {"id": "Greet", "now": ["RandomText hello"], "after": ["AddEntityFact Greeted 5"]}},
            {"Rule": {
                "id": "Greet",
                "criteria": {"concept": "ThinkIdle", "facts": ["TimeOfDay = 12.0"]},
                "response": "Greet",
                "apply_facts": [],
            }},
        ],
    })
    assert len(rule_set) == 1
    rule = rule_set.rules[0]
    assert rule.criteria.concept == narrative.Concept.THINK_IDLE
    assert rule.response.now.get_text() == ["hello"]
    assert rule.response.after.actions == (director.AddEntityFact("Greeted", 1., 5.),)

def test_parse_concept():
    assert rule_parser.parse_concept("think_idle") == narrative.Concept.THINK_IDLE
    assert rule_parser.parse_concept("ThinkStartingEating") == narrative.Concept.THINK_STARTING_EATING
    assert rule_parser.parse_concept("THINK_JUST_ATE") == narrative.Concept.THINK_JUST_ATE
    assert rule_parser.parse_concept("Evolve") == narrative.Concept.EVOLVE

    with pytest.raises(ValueError):
        rule_parser.parse_concept("think_hard")
    with pytest.raises(ValueError):
        rule_parser.parse_concept(1)

def test_parse_action():
    assert rule_parser.parse_action("RandomText a, b ,c") == director.RandomText(("a", "b", "c"))
    assert rule_parser.parse_action("RandomText thought.idle") == director.RandomText(("thought.idle",))
    assert rule_parser.parse_action("AddGlobalFact Foo") == director.AddGlobalFact("Foo", 1., None)
    assert rule_parser.parse_action("AddGlobalFact Foo 2.5") == director.AddGlobalFact("Foo", 1., 2.5)
    assert rule_parser.parse_action("AddEntityFact Bar 10") == director.AddEntityFact("Bar", 1., 10.)

def test_parse_action_bad():
    for bad in [
        "",
        "RandomText",
        "RandomText ,",
        "AddGlobalFact",
        "AddGlobalFact Foo soon",
        "AddGlobalFact Foo -1",
        "AddEntityFact Foo 1 2",
        "RemoveGlobalFact Foo",
    ]:
        with pytest.raises(ValueError):
            rule_parser.parse_action(bad)

def test_load_errors():
    good_response = {"id": "R", "now": ["RandomText r"]}
    good_rule = {"id": "X", "criteria": {"concept": "think_idle", "facts": ["A"]}, "response": "R"}

    # sanity check the good case
    assert len(rule_parser.loadd({"response": [good_response], "rule": [good_rule]})) == 1

    bad_documents = [
        # unknown response
        {"response": [good_response], "rule": [dict(good_rule, response="Missing")]},
        # duplicate response
        {"response": [good_response, good_response], "rule": [good_rule]},
        # response missing now
        {"response": [{"id": "R"}], "rule": [good_rule]},
        # bad action
        {"response": [{"id": "R", "now": ["Dance"]}], "rule": [good_rule]},
        # unknown concept
        {"response": [good_response], "rule": [dict(good_rule, criteria={"concept": "nap", "facts": []})]},
        # missing concept
        {"response": [good_response], "rule": [dict(good_rule, criteria={"facts": ["A"]})]},
        # facts not a list
        {"response": [good_response], "rule": [dict(good_rule, criteria={"concept": "think_idle", "facts": "A"})]},
        # bad criterion
        {"response": [good_response], "rule": [dict(good_rule, criteria={"concept": "think_idle", "facts": ["A ~ 3"]})]},
        # missing id
        {"response": [good_response], "rule": [{"criteria": good_rule["criteria"], "response": "R"}]},
        # rules not a list
        {"response": [good_response], "rule": good_rule},
        # bad entry
        {"entries": [{"Response": good_response, "Rule": good_rule}]},
        {"entries": [{"Thing": good_rule}]},
    ]
    for doc in bad_documents:
        with pytest.raises(ValueError):
            rule_parser.loadd(doc)

def test_empty_document():
    rule_set = rule_parser.loads("")
    assert len(rule_set) == 0

def test_load_file(tmp_path):
    path = tmp_path / "rules.toml"
    path.write_text(EXAMPLE_RULES)
    assert len(rule_parser.load(str(path))) == 7
    with open(path) as f:
        assert len(rule_parser.load(f)) == 7

def test_load_default():
    rule_set = rule_parser.load_default()
    assert len(rule_set) > 0
    assert len(rule_set.for_concept(narrative.Concept.THINK_IDLE)) > 0
    lengths = [len(r.criteria) for r in rule_set]
    assert lengths == sorted(lengths, reverse=True)
