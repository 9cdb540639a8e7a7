""" Rule evaluation for the narrative system.

Rules pair a Criteria (a conjunction of range tests over facts, tagged with a
Concept) with a Response. A FactQuery finds the most specific rules for its
concept that match a chain of fact stores and picks one of them at random.
"""

import enum
import logging
from dataclasses import dataclass, field
from collections.abc import Iterable, Iterator
from typing import Any, Optional

import numpy as np

from factdb import facts

logger = logging.getLogger(__name__)


class Concept(enum.IntEnum):
    """ Why a query is being made. """
    THINK_IDLE = enum.auto()
    THINK_JUST_ATE = enum.auto()
    THINK_STARTING_EATING = enum.auto()
    EVOLVE = enum.auto()


@dataclass(frozen=True)
class Criterion:
    """ The fact at key lies in [lower, upper], inclusive. """
    key: str
    lower: float
    upper: float

    def evaluate(self, value:float) -> bool:
        return self.lower <= value <= self.upper

    def __str__(self) -> str:
        return f'{self.key} in [{self.lower}, {self.upper}]'


@dataclass(frozen=True)
class Criteria:
    concept: Concept
    predicates: tuple[Criterion, ...]

    def evaluate(self, fact_dbs:facts.FactStoreChain) -> bool:
        for criterion in self.predicates:
            if not criterion.evaluate(fact_dbs.get(criterion.key)):
                return False
        return True

    def __len__(self) -> int:
        return len(self.predicates)

    def __str__(self) -> str:
        return f'concept {self.concept.name} criterion ' + " ".join(str(c) for c in self.predicates)


class Action:
    """ Something a response does when it is chosen. """


@dataclass(frozen=True)
class RandomText(Action):
    """ Text keys to display, one of which is shown. """
    choices: tuple[str, ...]


@dataclass(frozen=True)
class AddGlobalFact(Action):
    key: str
    value: float = 1.
    ttl: Optional[float] = None


@dataclass(frozen=True)
class AddEntityFact(Action):
    key: str
    value: float = 1.
    ttl: Optional[float] = None


@dataclass(frozen=True)
class ActionSet:
    actions: tuple[Action, ...] = ()

    def get_text(self) -> list[str]:
        """ all text choices of all RandomText actions, in order """
        text:list[str] = []
        for action in self.actions:
            if isinstance(action, RandomText):
                text.extend(action.choices)
        return text

    def __iter__(self) -> Iterator[Action]:
        return iter(self.actions)

    def __len__(self) -> int:
        return len(self.actions)


@dataclass(frozen=True)
class Response:
    """ now is applied as soon as the response is chosen, after is left for
    the host to apply as a follow up. """
    now: ActionSet = field(default_factory=ActionSet)
    after: ActionSet = field(default_factory=ActionSet)


@dataclass(frozen=True)
class Rule:
    id: str
    criteria: Criteria
    response: Response

    def __str__(self) -> str:
        return f'Rule {self.id} criteria {self.criteria}'


class RuleSet:
    """ An immutable collection of rules, most specific first.

    Rules with more predicates come first. Rules with the same number of
    predicates keep their load order. FactQuery relies on this ordering to
    stop evaluating as soon as it has left the most specific matching tier.
    """

    def __init__(self, rules:Iterable[Rule]) -> None:
        self.rules:tuple[Rule, ...] = tuple(sorted(rules, key=lambda r: len(r.criteria), reverse=True))

    def for_concept(self, concept:Concept) -> list[Rule]:
        return [r for r in self.rules if r.criteria.concept == concept]

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)


class FactQuery:
    """ A query for the best response to a concept given some facts.

    fact stores are consulted in the order they were added. Facts added
    directly to the query are only consulted if no store defines the key.

        response = FactQuery(Concept.THINK_IDLE)\\
            .add_fact_db(world_facts)\\
            .add_fact_db(pet_facts)\\
            .add_fact("JustWoke", 1.)\\
            .run(rule_set)
    """

    def __init__(self, concept:Concept) -> None:
        self.concept = concept
        self.fact_dbs = facts.FactStoreChain()
        self.query_fact_db = facts.FactStore()

    def add_fact(self, key:Any, value:float) -> "FactQuery":
        self.query_fact_db.add(key, value)
        return self

    def add_fact_db(self, fact_db:facts.FactStore) -> "FactQuery":
        self.fact_dbs.add(fact_db)
        return self

    def matches(self, rule_set:RuleSet) -> list[Rule]:
        """ every rule for our concept at the most specific matching level """
        logger.debug(f'running fact query with {len(self.fact_dbs)} dbs and concept {self.concept.name}')

        fact_dbs = self.fact_dbs.copy()
        fact_dbs.add(self.query_fact_db)
        logger.debug(f'query fact dbs loaded: {fact_dbs}')

        matches:list[Rule] = []
        level:Optional[int] = None
        for rule in rule_set:
            # every remaining rule is less specific than what we've matched
            if level is not None and len(rule.criteria) < level:
                break

            if rule.criteria.concept != self.concept:
                continue

            logger.debug(f'checking rule {rule}')
            if rule.criteria.evaluate(fact_dbs):
                logger.debug(f'rule {rule.id} matches')
                if level is None:
                    level = len(rule.criteria)
                matches.append(rule)

        return matches

    def run(self, rule_set:RuleSet, random:Optional[np.random.Generator]=None) -> Optional[Response]:
        matches = self.matches(rule_set)
        if len(matches) == 0:
            logger.debug(f'no matches found for {self.concept.name}')
            return None

        if random is None:
            random = np.random.default_rng()
        rule = matches[random.integers(len(matches))]
        logger.debug(f'chose rule {rule.id} out of {len(matches)} matches')
        return rule.response

    def single_criteria(self, criteria:Criteria) -> bool:
        """ yes/no test of one criteria against the query's fact stores.

        Facts added with add_fact are not consulted. """
        return criteria.concept == self.concept and criteria.evaluate(self.fact_dbs)
