import logging

import pytest

from factdb import narrative, events, facts
from . import EXAMPLE_RULES

# some logging to turn on if we like
#logging.getLogger("factdb.narrative.director").level = logging.DEBUG
#logging.getLogger("factdb.events").level = logging.DEBUG

@pytest.fixture
def example_rule_set() -> narrative.RuleSet:
    return narrative.loads(EXAMPLE_RULES)

@pytest.fixture
def global_facts() -> facts.FactStore:
    return facts.FactStore()

@pytest.fixture
def fact_manager(global_facts:facts.FactStore) -> events.FactManager:
    return events.FactManager(global_facts)

@pytest.fixture
def agent_facts(fact_manager:events.FactManager) -> facts.FactStore:
    return fact_manager.register_agent("pet")
