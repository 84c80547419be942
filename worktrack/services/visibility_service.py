"""Row-level visibility and write authority for work items.

Everything here is pure: scopes are computed from an IdentityContext alone and can be
rendered either as a SQL predicate (for queries) or evaluated against a loaded row.
Both renderings come from the same ScopeRule, so listing and single-item checks agree.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from sqlalchemy import and_, false, or_, true
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import col

from worktrack.domain.identity import IdentityContext
from worktrack.domain.models import OrgKind, WorkItem
from worktrack.domain.roles import (
    CUSTOMER_CREATE_ROLES,
    DELETE_ROLES,
    TEAM_CREATE_ROLES,
    UNRESTRICTED_ROLES,
    Role,
)


class QueryIntent(StrEnum):
    ALL = "all"
    MY_TASKS = "my_tasks"
    ASSIGNED_BY_ME = "assigned_by_me"
    TEAM = "team"
    PROJECT = "project"
    COMPANY = "company"


@dataclass(frozen=True)
class ScopeRule:
    """A union of grants; an item matches when any grant covers it."""

    allow_all: bool = False
    team_ids: frozenset[str] = frozenset()
    company_ids: frozenset[str] = frozenset()
    project_ids: frozenset[str] = frozenset()
    assignee_ids: frozenset[str] = frozenset()
    assigner_ids: frozenset[str] = frozenset()

    def clause(self) -> ColumnElement[bool]:
        if self.allow_all:
            return true()
        terms: list[ColumnElement[bool]] = []
        if self.team_ids:
            terms.append(
                and_(
                    col(WorkItem.org_kind) == OrgKind.TEAM,
                    col(WorkItem.org_id).in_(sorted(self.team_ids)),
                )
            )
        if self.company_ids:
            terms.append(
                and_(
                    col(WorkItem.org_kind) == OrgKind.CUSTOMER_COMPANY,
                    col(WorkItem.org_id).in_(sorted(self.company_ids)),
                )
            )
        if self.project_ids:
            terms.append(col(WorkItem.project_id).in_(sorted(self.project_ids)))
        if self.assignee_ids:
            terms.append(col(WorkItem.assignee_id).in_(sorted(self.assignee_ids)))
        if self.assigner_ids:
            terms.append(col(WorkItem.assigner_id).in_(sorted(self.assigner_ids)))
        if not terms:
            return false()
        return or_(*terms)

    def matches(self, item: WorkItem) -> bool:
        if self.allow_all:
            return True
        if item.org_kind == OrgKind.TEAM and item.org_id in self.team_ids:
            return True
        if item.org_kind == OrgKind.CUSTOMER_COMPANY and item.org_id in self.company_ids:
            return True
        if item.project_id in self.project_ids:
            return True
        if item.assignee_id is not None and item.assignee_id in self.assignee_ids:
            return True
        return item.assigner_id in self.assigner_ids


ALL_ITEMS = ScopeRule(allow_all=True)


@dataclass(frozen=True)
class VisibilityScope:
    base: ScopeRule
    narrowing: ScopeRule

    def clause(self) -> ColumnElement[bool]:
        return and_(self.base.clause(), self.narrowing.clause())

    def matches(self, item: WorkItem) -> bool:
        return self.base.matches(item) and self.narrowing.matches(item)


def _own_items(identity: IdentityContext) -> ScopeRule:
    me = frozenset({identity.person_id})
    return ScopeRule(assignee_ids=me, assigner_ids=me)


def _company_ids(identity: IdentityContext) -> frozenset[str]:
    if identity.customer_company_id is None:
        return frozenset()
    return frozenset({identity.customer_company_id})


def base_rule(identity: IdentityContext) -> ScopeRule:
    if identity.role in UNRESTRICTED_ROLES:
        return ALL_ITEMS
    own = _own_items(identity)
    if identity.role == Role.TEAM_LEAD:
        return ScopeRule(
            team_ids=identity.led_team_ids,
            assignee_ids=own.assignee_ids,
            assigner_ids=own.assigner_ids,
        )
    if identity.role == Role.CUSTOMER_HEAD:
        return ScopeRule(
            company_ids=_company_ids(identity),
            assignee_ids=own.assignee_ids,
            assigner_ids=own.assigner_ids,
        )
    return own


def intent_rule(identity: IdentityContext, intent: QueryIntent) -> ScopeRule:
    me = frozenset({identity.person_id})
    if intent == QueryIntent.MY_TASKS:
        return ScopeRule(assignee_ids=me)
    if intent == QueryIntent.ASSIGNED_BY_ME:
        return ScopeRule(assigner_ids=me)
    if intent == QueryIntent.TEAM:
        return ScopeRule(team_ids=identity.led_team_ids)
    if intent == QueryIntent.PROJECT:
        return ScopeRule(project_ids=identity.managed_project_ids)
    if intent == QueryIntent.COMPANY:
        return ScopeRule(company_ids=_company_ids(identity))
    return ALL_ITEMS


def resolve_scope(identity: IdentityContext, intent: QueryIntent = QueryIntent.ALL) -> VisibilityScope:
    return VisibilityScope(base=base_rule(identity), narrowing=intent_rule(identity, intent))


def scope_clause(identity: IdentityContext, intent: QueryIntent = QueryIntent.ALL) -> ColumnElement[bool]:
    return resolve_scope(identity, intent).clause()


def is_visible(identity: IdentityContext, item: WorkItem, intent: QueryIntent = QueryIntent.ALL) -> bool:
    return resolve_scope(identity, intent).matches(item)


def has_management_authority(identity: IdentityContext, item: WorkItem) -> bool:
    if identity.role in UNRESTRICTED_ROLES:
        return True
    if identity.role == Role.TEAM_LEAD:
        return item.org_kind == OrgKind.TEAM and item.org_id in identity.led_team_ids
    if identity.role == Role.CUSTOMER_HEAD:
        return (
            item.org_kind == OrgKind.CUSTOMER_COMPANY
            and identity.customer_company_id is not None
            and item.org_id == identity.customer_company_id
        )
    return False


def can_edit(identity: IdentityContext, item: WorkItem) -> bool:
    return has_management_authority(identity, item) or item.assigner_id == identity.person_id


def can_progress(identity: IdentityContext, item: WorkItem) -> bool:
    return can_edit(identity, item) or (
        item.assignee_id is not None and item.assignee_id == identity.person_id
    )


def can_delete(identity: IdentityContext) -> bool:
    return identity.role in DELETE_ROLES


def can_create(identity: IdentityContext, org_kind: OrgKind, org_id: str) -> bool:
    if org_kind == OrgKind.TEAM:
        if identity.role not in TEAM_CREATE_ROLES:
            return False
        if identity.role == Role.TEAM_LEAD:
            return org_id in identity.led_team_ids
        return True
    if identity.role not in CUSTOMER_CREATE_ROLES:
        return False
    if identity.role == Role.CUSTOMER_HEAD:
        return identity.customer_company_id is not None and org_id == identity.customer_company_id
    return True
