"""Administration of approval templates.

Templates referenced by any instance keep their step list forever: the steps can
be neither replaced nor deleted, so running and finished instances always refer to
the chain they were created from. Metadata (name, description, active flag,
default SLA) may change at any time.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from litestar_approvals.db.models import StepDefinitionModel, WorkflowTemplateModel
from litestar_approvals.db.repositories import WorkflowTemplateRepository
from litestar_approvals.engine.base import SessionService
from litestar_approvals.exceptions import TemplateInUseError, TemplateNotFoundError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from litestar_approvals.core.models import StepSpec

__all__ = ["TemplateService", "validate_steps"]

logger = logging.getLogger(__name__)

_UNSET = object()


def validate_steps(steps: Sequence[StepSpec]) -> None:
    """Check a step list before it is stored.

    Raises:
        ValidationError: If the list is empty, an order is not positive or repeats,
            a name or role is blank, or an SLA is not positive.
    """
    if not steps:
        msg = "A template needs at least one step"
        raise ValidationError(msg)
    seen: set[int] = set()
    for step in steps:
        if step.order < 1:
            msg = f"Step order must be positive, got {step.order}"
            raise ValidationError(msg)
        if step.order in seen:
            msg = f"Duplicate step order {step.order}"
            raise ValidationError(msg)
        seen.add(step.order)
        if not step.name.strip():
            msg = f"Step {step.order} has no name"
            raise ValidationError(msg)
        if not step.required_role.strip():
            msg = f"Step {step.order} '{step.name}' has no required role"
            raise ValidationError(msg)
        if step.sla_hours is not None and step.sla_hours <= 0:
            msg = f"Step {step.order} '{step.name}' has a non-positive SLA"
            raise ValidationError(msg)


def _build_steps(steps: Sequence[StepSpec]) -> list[StepDefinitionModel]:
    return [
        StepDefinitionModel(
            step_order=step.order,
            name=step.name.strip(),
            required_role=step.required_role.strip(),
            is_required=step.is_required,
            sla_hours=step.sla_hours,
            step_type=step.step_type,
        )
        for step in sorted(steps, key=lambda step: step.order)
    ]


class TemplateService(SessionService):
    """Creates, edits and removes approval templates.

    Every method runs in its own transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self._template_repo = WorkflowTemplateRepository(session=session)

    async def create_template(
        self,
        name: str,
        steps: Sequence[StepSpec],
        *,
        created_by: str | None = None,
        description: str | None = None,
        default_sla_hours: int | None = None,
    ) -> WorkflowTemplateModel:
        """Create an active template.

        Args:
            name: Unique template name.
            steps: Step definitions; orders must be unique and positive.
            created_by: The creating user.
            description: Optional description.
            default_sla_hours: Hours until an instance is due.

        Returns:
            The created template with its steps.

        Raises:
            ValidationError: If the name is blank or taken, or the steps are invalid.
        """
        if not name.strip():
            msg = "Template name must not be blank"
            raise ValidationError(msg)
        validate_steps(steps)
        async with self.transaction():
            if await self._template_repo.get_by_name(name.strip()) is not None:
                msg = f"Workflow template '{name}' already exists"
                raise ValidationError(msg)
            template = WorkflowTemplateModel(
                name=name.strip(),
                description=description,
                default_sla_hours=default_sla_hours,
                created_by=created_by,
                is_active=True,
                steps=_build_steps(steps),
            )
            self.session.add(template)
            try:
                await self.session.flush()
            except IntegrityError as exc:
                msg = f"Workflow template '{name}' already exists"
                raise ValidationError(msg) from exc
            await self.session.refresh(template)

        logger.info("Created workflow template %s (%s) with %d step(s)", template.name, template.id, len(steps))
        return template

    async def update_template(
        self,
        template_id: UUID,
        *,
        name: str | None = None,
        description: object = _UNSET,
        is_active: bool | None = None,
        default_sla_hours: object = _UNSET,
    ) -> WorkflowTemplateModel:
        """Change template metadata. Arguments left out are not changed.

        ``description`` and ``default_sla_hours`` may be set to None to clear them.

        Raises:
            TemplateNotFoundError: If the template does not exist.
            ValidationError: If the new name is blank or taken.
        """
        async with self.transaction():
            template = await self._get(template_id)
            if name is not None and name.strip() != template.name:
                if not name.strip():
                    msg = "Template name must not be blank"
                    raise ValidationError(msg)
                if await self._template_repo.get_by_name(name.strip()) is not None:
                    msg = f"Workflow template '{name}' already exists"
                    raise ValidationError(msg)
                template.name = name.strip()
            if description is not _UNSET:
                template.description = description  # type: ignore[assignment]
            if is_active is not None:
                template.is_active = is_active
            if default_sla_hours is not _UNSET:
                template.default_sla_hours = default_sla_hours  # type: ignore[assignment]
            await self.session.flush()
            await self.session.refresh(template)
        return template

    async def replace_steps(self, template_id: UUID, steps: Sequence[StepSpec]) -> WorkflowTemplateModel:
        """Replace every step of an unused template.

        Raises:
            TemplateNotFoundError: If the template does not exist.
            ValidationError: If the steps are invalid.
            TemplateInUseError: If any instance references the template.
        """
        validate_steps(steps)
        async with self.transaction():
            template = await self._get(template_id)
            await self._ensure_unused(template)
            template.steps.clear()
            # Old rows must be gone before new rows reuse their orders.
            await self.session.flush()
            template.steps.extend(_build_steps(steps))
            await self.session.flush()
            await self.session.refresh(template)

        logger.info("Replaced steps of workflow template %s, now %d step(s)", template.name, len(steps))
        return template

    async def delete_template(self, template_id: UUID) -> None:
        """Delete an unused template and its steps.

        Raises:
            TemplateNotFoundError: If the template does not exist.
            TemplateInUseError: If any instance references the template.
        """
        async with self.transaction():
            template = await self._get(template_id)
            await self._ensure_unused(template)
            await self.session.delete(template)
            await self.session.flush()

        logger.info("Deleted workflow template %s (%s)", template.name, template_id)

    async def list_active(self) -> Sequence[WorkflowTemplateModel]:
        """List active templates ordered by name."""
        return await self._template_repo.list_active()

    async def get_template(self, template_id: UUID) -> WorkflowTemplateModel:
        """Get a template with its steps.

        Raises:
            TemplateNotFoundError: If the template does not exist.
        """
        return await self._get(template_id)

    async def _get(self, template_id: UUID) -> WorkflowTemplateModel:
        template = await self._template_repo.get_one_or_none(id=template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return template

    async def _ensure_unused(self, template: WorkflowTemplateModel) -> None:
        count = await self._template_repo.count_instances(template.id)
        if count:
            raise TemplateInUseError(template.id, count)
