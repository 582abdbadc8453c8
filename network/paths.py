"""
Connection path finder - warm paths from the home network to a target.

Works on a snapshot of the store, so it never blocks imports. Traversal is
a depth-first walk over simple paths (no entity visited twice) bounded by
max_path_length, pruned to the two shapes that can earn a tier:

- person bridge:   home -(affiliation)- person -(affiliation)- target
- ownership chain: home -(ownership)- ... -(ownership)- target, going up
                   towards a common owner and then down, never down then up

Tiers, strongest first:
  1 former affiliate of home, now at target
  2 home currently owns target (directly or down a chain)
  3 current affiliate of home, formerly at target
  4 home formerly owned target
  5 a common owner above both home and target
  6 mutual former affiliate, with no current tie to either side
"""

from collections import defaultdict
from datetime import date
from typing import Optional

from config import get_logger, PathSettings
from models import (
    Entity,
    Relationship,
    RelationshipKind,
    AFFILIATION_KINDS,
    ConnectionPath,
    PathEntity,
    PathTier,
)
from .errors import NotFoundError, MalformedPayloadError
from .store import TemporalStore, as_date

LOGGER = get_logger(__name__)

UP = "up"
DOWN = "down"


class ConnectionPathFinder:
    """Read-only consumer of the temporal store."""

    def __init__(self, store: TemporalStore, settings: PathSettings = None):
        self.store = store
        self.settings = settings or PathSettings()

    def find_paths(
        self,
        home_set: Optional[list[str]],
        target: str,
        max_path_length: Optional[int] = None,
        as_of_date: Optional[date] = None,
    ) -> list[ConnectionPath]:
        """
        Ranked paths from any home entity to the target.

        home_set defaults to the store's home network on the as-of date.
        Order: tier, then path length, then most recent edge start date.
        """
        on_date = as_date(as_of_date) or date.today()
        max_len = max_path_length if max_path_length is not None else self.settings.max_path_length
        if max_len < 1:
            raise MalformedPayloadError(f"max_path_length must be at least 1, got {max_len}")

        entities, relationships = self.store.snapshot()
        if target not in entities:
            raise NotFoundError("entity", target)

        if home_set is None:
            home_set = self.store.home_network(on_date)
        for home_id in home_set:
            if home_id not in entities:
                raise NotFoundError("entity", home_id)

        graph = _Graph(entities, relationships, on_date)
        paths = []
        for home_id in sorted(set(home_set)):
            if home_id == target:
                continue
            paths.extend(graph.walk(home_id, target, max_len))

        paths.sort(key=lambda p: p.sort_key())
        LOGGER.debug(
            f"Found {len(paths)} paths to {target} from {len(home_set)} home entities "
            f"(max length {max_len}, as of {on_date})"
        )
        return paths


class _Graph:
    """Undirected multigraph of relationships that exist on the as-of date."""

    def __init__(self, entities: dict[str, Entity], relationships: list[Relationship], on_date: date):
        self.entities = entities
        self.on_date = on_date
        self.adjacency: dict[str, list[tuple[Relationship, str]]] = defaultdict(list)

        for rel in relationships:
            if not rel.exists_on(on_date):
                continue
            if rel.party_a_id not in entities or rel.party_b_id not in entities:
                continue
            self.adjacency[rel.party_a_id].append((rel, rel.party_b_id))
            self.adjacency[rel.party_b_id].append((rel, rel.party_a_id))

        for edges in self.adjacency.values():
            edges.sort(key=lambda pair: (pair[1], pair[0].start_date, pair[0].id))

    def walk(self, home: str, target: str, max_len: int) -> list[ConnectionPath]:
        found: list[ConnectionPath] = []
        visited = {home}
        nodes = [home]
        edges: list[Relationship] = []
        directions: list[str] = []

        def step(node: str) -> None:
            for rel, nxt in self.adjacency.get(node, []):
                if nxt in visited:
                    continue
                direction = _direction(rel, node)
                if not self._can_extend(edges, directions, rel, direction):
                    continue

                edges.append(rel)
                directions.append(direction)
                nodes.append(nxt)

                if nxt == target:
                    path = self._classify(nodes, edges, directions)
                    if path is not None:
                        found.append(path)
                elif len(edges) < max_len:
                    visited.add(nxt)
                    step(nxt)
                    visited.discard(nxt)

                nodes.pop()
                directions.pop()
                edges.pop()

        step(home)
        return found

    @staticmethod
    def _can_extend(edges: list[Relationship], directions: list[str], rel: Relationship, direction: str) -> bool:
        """Keep only walks that can still turn into a tiered path."""
        if not edges:
            return True
        first = edges[0]
        if first.kind in AFFILIATION_KINDS:
            # person bridge is exactly two affiliation edges
            return len(edges) == 1 and rel.kind in AFFILIATION_KINDS
        if rel.kind != RelationshipKind.OWNERSHIP:
            return False
        # up* down*: once heading down, never back up
        return not (directions[-1] == DOWN and direction == UP)

    def _classify(
        self,
        nodes: list[str],
        edges: list[Relationship],
        directions: list[str],
    ) -> Optional[ConnectionPath]:
        on_date = self.on_date
        tier = None

        if edges[0].kind in AFFILIATION_KINDS:
            if len(edges) != 2 or self.entities[nodes[1]].entity_type != "PERSON":
                return None
            to_home, to_target = edges
            person = nodes[1]
            if to_home.is_former_on(on_date) and to_target.is_current_on(on_date):
                if self._has_current_affiliation(person, {nodes[0]}):
                    return None
                tier = PathTier.FORMER_EMPLOYEE_NOW_AT_TARGET
            elif to_home.is_current_on(on_date) and to_target.is_former_on(on_date):
                if self._has_current_affiliation(person, {nodes[2]}):
                    return None
                tier = PathTier.CURRENT_EMPLOYEE_FORMERLY_AT_TARGET
            elif to_home.is_former_on(on_date) and to_target.is_former_on(on_date):
                if self._has_current_affiliation(person, {nodes[0], nodes[2]}):
                    return None
                tier = PathTier.MUTUAL_FORMER_EMPLOYEE
        else:
            if all(d == DOWN for d in directions):
                if all(e.is_current_on(on_date) for e in edges):
                    tier = PathTier.CURRENT_OWNERSHIP
                else:
                    tier = PathTier.FORMER_OWNERSHIP
            elif directions[0] == UP and directions[-1] == DOWN:
                # the owner both sides share must be a PE firm
                apex = nodes[directions.index(DOWN)]
                if self.entities[apex].entity_type != "PE_FIRM":
                    return None
                tier = PathTier.COMMON_PE_OWNER

        if tier is None:
            return None

        path_entities = [
            PathEntity(id=n, entity_type=self.entities[n].entity_type, name=self.entities[n].name)
            for n in nodes
        ]
        return ConnectionPath(
            tier=tier,
            entities=path_entities,
            edges=list(edges),
            explanation=self._explain(tier, path_entities, directions),
        )

    def _has_current_affiliation(self, person: str, orgs: set[str]) -> bool:
        for rel, other in self.adjacency.get(person, []):
            if other in orgs and rel.kind in AFFILIATION_KINDS and rel.is_current_on(self.on_date):
                return True
        return False

    @staticmethod
    def _explain(tier: PathTier, entities: list[PathEntity], directions: list[str]) -> str:
        home, target = entities[0].name, entities[-1].name
        middle = [e.name for e in entities[1:-1]]
        via = f" via {', '.join(middle)}" if middle else ""

        if tier == PathTier.FORMER_EMPLOYEE_NOW_AT_TARGET:
            return f"{middle[0]} formerly at {home}, now at {target}"
        if tier == PathTier.CURRENT_EMPLOYEE_FORMERLY_AT_TARGET:
            return f"{middle[0]} currently at {home}, formerly at {target}"
        if tier == PathTier.MUTUAL_FORMER_EMPLOYEE:
            return f"{middle[0]} formerly at both {home} and {target}"
        if tier == PathTier.CURRENT_OWNERSHIP:
            return f"{home} currently owns {target}{via}"
        if tier == PathTier.FORMER_OWNERSHIP:
            return f"{home} formerly owned {target}{via}"
        apex = directions.index(DOWN)
        return f"{entities[apex].name} owns or owned both {home} and {target}"


def _direction(rel: Relationship, from_node: str) -> str:
    """For ownership, DOWN means from_node owns the next node."""
    return DOWN if rel.party_a_id == from_node else UP
