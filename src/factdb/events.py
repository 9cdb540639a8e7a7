""" Bridges between responses chosen by the narrative system and fact stores.

Responsible for:
 * owning the global fact store and the per-agent fact stores
 * building queries over those stores
 * queuing response actions for application
 * writing facts requested by actions
 * retracting facts when their ttl runs out
"""

import collections
import dataclasses
import logging
from dataclasses import dataclass
from collections.abc import Hashable, Mapping
from typing import Optional

import numpy as np

from factdb import config, facts, task_schedule, util
from factdb.narrative import director


@dataclass(frozen=True)
class ActionEvent:
    """ A request to apply an action set, on behalf of an agent if given """
    action_set: director.ActionSet
    agent_id: Optional[Hashable] = None

    def with_agent(self, agent_id:Hashable) -> "ActionEvent":
        return dataclasses.replace(self, agent_id=agent_id)


@dataclass(frozen=True)
class PendingFactDelete:
    """ A scheduled retraction of key from an agent's store, or from the
    global store if applies_to is None """
    key: str
    applies_to: Optional[Hashable] = None


class FactManager:
    """ Applies response actions to fact stores and expires facts over time.

    The host drives time: it calls tick with its current timestamp (in
    seconds) once per simulation step. Events triggered with trigger are
    applied during the next tick, before expired facts are retracted.
    """

    def __init__(
        self,
        global_facts:Optional[facts.FactStore]=None,
        random:Optional[np.random.Generator]=None,
    ) -> None:
        self.logger = logging.getLogger(util.fullname(self))

        self.global_facts = global_facts if global_facts is not None else facts.FactStore()
        self.agents:dict[Hashable, facts.FactStore] = {}
        if random is None:
            random = np.random.default_rng(config.query_seed())
        self.random = random

        # this is actual dynamic state
        self.timestamp = 0.
        self.event_queue:collections.deque[ActionEvent] = collections.deque()
        self.expire_schedule:task_schedule.TaskSchedule[PendingFactDelete] = task_schedule.TaskSchedule()

    def register_agent(self, agent_id:Hashable, fact_store:Optional[facts.FactStore]=None) -> facts.FactStore:
        if agent_id in self.agents:
            raise ValueError(f'agent {agent_id} already has a fact store registered')
        if fact_store is None:
            fact_store = facts.FactStore()
        self.agents[agent_id] = fact_store
        return fact_store

    def unregister_agent(self, agent_id:Hashable) -> None:
        if agent_id not in self.agents:
            raise KeyError(f'agent {agent_id} has no fact store registered')
        del self.agents[agent_id]
        for delete in self.expire_schedule.tasks():
            if delete.applies_to == agent_id:
                self.expire_schedule.cancel_task(delete)

    def agent_facts(self, agent_id:Hashable) -> facts.FactStore:
        try:
            return self.agents[agent_id]
        except KeyError as ke:
            raise KeyError(f'agent {agent_id} has no fact store registered') from ke

    def query(self, concept:director.Concept, agent_id:Optional[Hashable]=None) -> director.FactQuery:
        """ a query over the global facts and then the agent's facts """
        query = director.FactQuery(concept).add_fact_db(self.global_facts)
        if agent_id is not None:
            query.add_fact_db(self.agent_facts(agent_id))
        return query

    def respond(
        self,
        rule_set:director.RuleSet,
        concept:director.Concept,
        agent_id:Optional[Hashable]=None,
        extra_facts:Optional[Mapping[str, float]]=None,
    ) -> Optional[director.Response]:
        """ runs a query for concept and queues the chosen response's now
        actions for the next tick.

        extra_facts are one-shot facts for this query only. """

        query = self.query(concept, agent_id)
        for key, value in (extra_facts or {}).items():
            query.add_fact(key, value)

        response = query.run(rule_set, self.random)
        if response is not None:
            self.logger.debug(f'{agent_id} responding to {concept.name}: {response.now.get_text()}')
            self.trigger(ActionEvent(response.now, agent_id))
        return response

    def trigger(self, event:ActionEvent) -> None:
        self.event_queue.append(event)

    def trigger_immediate(self, event:ActionEvent) -> None:
        self._do_event(event)

    def tick(self, timestamp:float) -> None:
        self.timestamp = timestamp

        events_processed = 0
        while len(self.event_queue) > 0:
            self._do_event(self.event_queue.popleft())
            events_processed += 1

        expired = self.expire_schedule.pop_current_tasks(timestamp)
        for delete in expired:
            self._retract(delete)

        if events_processed > 0 or len(expired) > 0:
            self.logger.debug(f'processed {events_processed} events and expired {len(expired)} facts at {timestamp}')

    def _do_event(self, event:ActionEvent) -> None:
        for action in event.action_set:
            if isinstance(action, director.AddGlobalFact):
                self._insert(None, self.global_facts, action.key, action.value, action.ttl)
            elif isinstance(action, director.AddEntityFact):
                if event.agent_id is None:
                    self.logger.error(f'no agent provided for entity fact insert of {action.key}')
                    continue
                if event.agent_id not in self.agents:
                    self.logger.error(f'agent {event.agent_id} does not have a fact store, dropping {action.key}')
                    continue
                self._insert(event.agent_id, self.agents[event.agent_id], action.key, action.value, action.ttl)
            # RandomText is for the host to display

    def _insert(self, applies_to:Optional[Hashable], fact_store:facts.FactStore, key:str, value:float, ttl:Optional[float]) -> None:
        fact_store.add(key, value)

        # the latest write decides when (or if) the fact expires
        delete = PendingFactDelete(key, applies_to)
        self.expire_schedule.cancel_task(delete)
        if ttl is not None:
            self.logger.debug(f'fact {key} for {applies_to} expires in {ttl}s')
            self.expire_schedule.push_task(self.timestamp + ttl, delete)

    def _retract(self, delete:PendingFactDelete) -> None:
        self.logger.debug(f'expiring fact {delete.key} for {delete.applies_to}')
        if delete.applies_to is None:
            self.global_facts.remove(delete.key)
        else:
            self.agents[delete.applies_to].remove(delete.key)
