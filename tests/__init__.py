from typing import Optional

import numpy as np

from factdb import narrative

EXAMPLE_RULES = """
    [[response]]
    id = "Greet"
    now = ["RandomText hello"]

    [[rule]]
    id = "Greet"
    response = "Greet"
    [rule.criteria]
    concept = "think_idle"
    facts = ["TimeOfDay = 12.0"]

    [[response]]
    id = "GreetRaining"
    now = ["RandomText raining_dialogue"]

    [[rule]]
    id = "GreetRaining"
    response = "GreetRaining"
    [rule.criteria]
    concept = "think_idle"
    facts = ["TimeOfDay = 12.0", "IsRaining"]

    [[response]]
    id = "LunchTime"
    now = ["RandomText lunch_dialogue"]

    [[rule]]
    id = "LunchTime"
    response = "LunchTime"
    [rule.criteria]
    concept = "think_idle"
    facts = ["TimeOfDay > 13.0", "Hunger > 0.5"]

    [[response]]
    id = "QueryFacts"
    now = ["RandomText query_dialogue"]

    [[rule]]
    id = "Query Facts"
    response = "QueryFacts"
    [rule.criteria]
    concept = "think_idle"
    facts = ["TimeOfDay > 13.0", "Hunger > 0.5", "IsQueryFact"]

    [[response]]
    id = "InsertGlobalFact"
    now = ["RandomText global", "AddGlobalFact NewGlobalFact"]

    [[rule]]
    id = "InsertGlobalFact"
    response = "InsertGlobalFact"
    [rule.criteria]
    concept = "think_idle"
    facts = ["DoGlobalFact", "NewGlobalFact !"]

    [[response]]
    id = "InsertExpiringGlobalFact"
    now = ["RandomText expiring", "AddGlobalFact ExpiringGlobalFact 10"]

    [[rule]]
    id = "InsertExpiringGlobalFact"
    response = "InsertExpiringGlobalFact"
    [rule.criteria]
    concept = "think_idle"
    facts = ["DoExpiringGlobalFact", "ExpiringGlobalFact !"]

    [[response]]
    id = "InsertEntityFact"
    now = ["RandomText entity", "AddEntityFact NewEntityFact"]

    [[rule]]
    id = "InsertEntityFact"
    response = "InsertEntityFact"
    [rule.criteria]
    concept = "think_idle"
    facts = ["DoEntityFact", "NewEntityFact !"]
"""

def response_text(response:Optional[narrative.Response]) -> str:
    assert response is not None, "query failed to find a response"
    return response.now.get_text()[0]

def seeded_random(seed:int=0) -> np.random.Generator:
    return np.random.default_rng(seed)
