""" Narrative System for factdb

Decides what a simulated agent thinks or says, and lets world and agent state
unlock behaviors, by matching rules against facts.

This is a rule engine in the style of dynamic dialog systems: the world and
each agent keep a store of facts (named float values). When the host wants a
thought, a line of dialog or a yes/no decision it makes a query with a concept
(why it is asking) and the fact stores relevant to the question.

Rules are authored in a document. Each rule has a concept, a list of
criteria and a response. A criterion is a single comparison against one fact
like "Hunger > 0.5", "IsRaining" or "Species = sardine". Criteria are
implicitly joined with AND. A criterion with "||" in it is a set of
alternatives, and a rule with alternatives becomes one rule per combination
when the document is loaded.

The rule with the most criteria that matches wins. If several equally
specific rules match, one of them is chosen at random. This lets authors
write a general rule ("it's noon") and layer more specific ones on top
("it's noon and raining") without any explicit priorities.

Queries never change facts. A response can ask for facts to be set (possibly
for a limited time), and it's up to the host to hand those actions to a
factdb.events.FactManager, which applies them and retracts expired facts as
the host's clock ticks.

Some motivating examples:

Idle Thoughts
Every few seconds each pet asks for a THINK_IDLE response with the world and
its own facts. A hungry pet around lunch time thinks about food, a pet in the
rain thinks about the rain, and a pet with nothing going on thinks something
generic.

Just Once
A response can set a fact that a rule requires to be absent ("SawFirstSnow
!"). The first time the rule matches the pet remarks on it, after that the
rule is blocked. With a ttl the fact expires and the remark can happen again
later.

Evolution
Pet templates list the facts required to evolve ("Age > 30", "Mood > 0.8").
Gameplay code loads these as a Criteria with the EVOLVE concept and asks the
query for a yes/no answer with single_criteria.
"""

from .director import Concept, Criterion, Criteria, Action, RandomText, AddGlobalFact, AddEntityFact, ActionSet, Response, Rule, RuleSet, FactQuery
from .rule_parser import loads, loadd, load, load_default, load_criteria
