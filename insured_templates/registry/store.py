# insured_templates/registry/store.py
"""
In-memory template and policy stores.

Each store owns a monotonic id counter. `next_*_id` only peeks; the counter
moves when the record is inserted, so a rejected operation never consumes
an id.
"""
from __future__ import annotations

from typing import Callable, Dict, Iterator, List, Optional, TypeVar

from insured_templates.common.validation import validate_pagination
from insured_templates.errors import NotFound
from insured_templates.pricing.templates import ProductTemplate, TemplatePolicy

T = TypeVar("T")


def paginate(items: Iterator[T], start: int, limit: int) -> List[T]:
    """Skip `start` items, then take up to `limit`."""
    validate_pagination(start, limit)
    page: List[T] = []
    for i, item in enumerate(items):
        if i < start:
            continue
        page.append(item)
        if len(page) >= limit:
            break
    return page


class TemplateStore:
    def __init__(self):
        self._templates: Dict[int, ProductTemplate] = {}
        self._counter = 0

    def next_template_id(self) -> int:
        return self._counter + 1

    def insert(self, template: ProductTemplate) -> None:
        if template.id != self._counter + 1:
            raise ValueError(f"template id {template.id} is not the next id")
        self._templates[template.id] = template
        self._counter = template.id

    def replace(self, template: ProductTemplate) -> None:
        if template.id not in self._templates:
            raise NotFound(f"template {template.id} not found")
        self._templates[template.id] = template

    def get(self, template_id: int) -> ProductTemplate:
        template = self._templates.get(template_id)
        if template is None:
            raise NotFound(f"template {template_id} not found")
        return template

    def find(self, predicate: Callable[[ProductTemplate], bool]) -> Iterator[ProductTemplate]:
        for template_id in sorted(self._templates):
            template = self._templates[template_id]
            if predicate(template):
                yield template

    def count(self) -> int:
        return self._counter


class PolicyStore:
    def __init__(self):
        self._policies: Dict[int, TemplatePolicy] = {}
        self._by_holder: Dict[str, List[int]] = {}
        self._by_template: Dict[int, List[int]] = {}
        self._counter = 0

    def next_policy_id(self) -> int:
        return self._counter + 1

    def insert(self, policy: TemplatePolicy) -> None:
        if policy.policy_id != self._counter + 1:
            raise ValueError(f"policy id {policy.policy_id} is not the next id")
        self._policies[policy.policy_id] = policy
        self._by_holder.setdefault(policy.holder, []).append(policy.policy_id)
        self._by_template.setdefault(policy.template_id, []).append(policy.policy_id)
        self._counter = policy.policy_id

    def get(self, policy_id: int) -> TemplatePolicy:
        policy = self._policies.get(policy_id)
        if policy is None:
            raise NotFound(f"policy {policy_id} not found")
        return policy

    def _iter_ids(self, ids: Optional[List[int]]) -> Iterator[TemplatePolicy]:
        for policy_id in ids or ():
            yield self._policies[policy_id]

    def by_holder(self, holder: str, start: int, limit: int) -> List[TemplatePolicy]:
        return paginate(self._iter_ids(self._by_holder.get(holder)), start, limit)

    def by_template(self, template_id: int, start: int, limit: int) -> List[TemplatePolicy]:
        return paginate(self._iter_ids(self._by_template.get(template_id)), start, limit)

    def count(self) -> int:
        return self._counter
