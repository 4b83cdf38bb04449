"""Tests for template administration."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from litestar_approvals.core.models import StepSpec
from litestar_approvals.core.types import StepType
from litestar_approvals.engine.templates import TemplateService, validate_steps
from litestar_approvals.exceptions import TemplateInUseError, TemplateNotFoundError, ValidationError

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from litestar_approvals.engine.approvals import ApprovalEngine


@pytest.fixture
def service(async_session: AsyncSession) -> TemplateService:
    """Create template service on the test session.

    Returns:
        TemplateService instance
    """
    return TemplateService(async_session)


@pytest.mark.unit
class TestValidateSteps:
    """Tests for step list validation."""

    def test_valid_steps(self) -> None:
        """Test a well-formed list passes."""
        validate_steps(
            [
                StepSpec(order=2, name="Admin", required_role="ADMIN", sla_hours=8),
                StepSpec(order=1, name="Manager", required_role="MANAGER", step_type=StepType.INFORMATIONAL),
            ]
        )

    @pytest.mark.parametrize(
        ("steps", "match"),
        [
            ([], "at least one step"),
            ([StepSpec(order=0, name="Review", required_role="MANAGER")], "must be positive"),
            (
                [
                    StepSpec(order=1, name="Review", required_role="MANAGER"),
                    StepSpec(order=1, name="Again", required_role="ADMIN"),
                ],
                "Duplicate step order 1",
            ),
            ([StepSpec(order=1, name="  ", required_role="MANAGER")], "has no name"),
            ([StepSpec(order=1, name="Review", required_role="")], "no required role"),
            ([StepSpec(order=1, name="Review", required_role="MANAGER", sla_hours=0)], "non-positive SLA"),
        ],
    )
    def test_invalid_steps(self, steps: list[StepSpec], match: str) -> None:
        """Test malformed step lists are rejected."""
        with pytest.raises(ValidationError, match=match):
            validate_steps(steps)


@pytest.mark.integration
class TestCreateTemplate:
    """Tests for template creation."""

    async def test_create_orders_steps(self, service: TemplateService) -> None:
        """Test steps are stored sorted by order with trimmed names."""
        template = await service.create_template(
            " Purchase Order ",
            [
                StepSpec(order=2, name="Finance", required_role="FINANCE", is_required=False),
                StepSpec(order=1, name=" Manager ", required_role="MANAGER", sla_hours=12),
            ],
            created_by="u-admin",
            description="Purchases above the limit",
        )

        assert template.name == "Purchase Order"
        assert template.is_active
        assert template.created_by == "u-admin"
        assert [(step.step_order, step.name) for step in template.steps] == [(1, "Manager"), (2, "Finance")]
        assert template.steps[0].sla_hours == 12
        assert not template.steps[1].is_required

    async def test_blank_name(self, service: TemplateService) -> None:
        """Test a blank name is rejected."""
        with pytest.raises(ValidationError, match="blank"):
            await service.create_template("   ", [StepSpec(order=1, name="Review", required_role="MANAGER")])

    async def test_duplicate_name(self, service: TemplateService, template_id: UUID) -> None:
        """Test names are unique."""
        with pytest.raises(ValidationError, match="already exists"):
            await service.create_template("Contract Review", [StepSpec(order=1, name="Review", required_role="MANAGER")])

    async def test_invalid_steps_rejected(self, service: TemplateService) -> None:
        """Test no template is stored when the steps are invalid."""
        with pytest.raises(ValidationError):
            await service.create_template("Empty", [])

        assert await service.list_active() == []


@pytest.mark.integration
class TestEditTemplate:
    """Tests for metadata updates and step replacement."""

    async def test_update_metadata(self, service: TemplateService, template_id: UUID) -> None:
        """Test metadata changes and clearing optional fields."""
        template = await service.update_template(
            template_id,
            name="Contract Sign-off",
            description="Signed contracts",
            default_sla_hours=None,
        )

        assert template.name == "Contract Sign-off"
        assert template.description == "Signed contracts"
        assert template.default_sla_hours is None
        assert template.is_active

    async def test_update_leaves_other_fields(self, service: TemplateService, template_id: UUID) -> None:
        """Test omitted arguments keep their values."""
        template = await service.update_template(template_id, is_active=False)

        assert template.name == "Contract Review"
        assert template.default_sla_hours == 72
        assert not template.is_active
        assert await service.list_active() == []

    async def test_rename_to_taken_name(self, service: TemplateService, template_id: UUID) -> None:
        """Test renaming onto an existing name is rejected."""
        await service.create_template("Other", [StepSpec(order=1, name="Review", required_role="MANAGER")])

        with pytest.raises(ValidationError, match="already exists"):
            await service.update_template(template_id, name="Other")

    async def test_update_missing_template(self, service: TemplateService) -> None:
        """Test updating a missing template is reported."""
        with pytest.raises(TemplateNotFoundError):
            await service.update_template(uuid4(), name="Nope")

    async def test_replace_steps(self, service: TemplateService, template_id: UUID) -> None:
        """Test steps of an unused template can be replaced, reusing orders."""
        template = await service.replace_steps(
            template_id,
            [
                StepSpec(order=1, name="Legal Review", required_role="LEGAL"),
                StepSpec(order=2, name="Manager Review", required_role="MANAGER"),
                StepSpec(order=3, name="Admin Approval", required_role="ADMIN"),
            ],
        )

        assert [(step.step_order, step.required_role) for step in template.steps] == [
            (1, "LEGAL"),
            (2, "MANAGER"),
            (3, "ADMIN"),
        ]

    async def test_used_template_is_frozen(
        self,
        service: TemplateService,
        engine: ApprovalEngine,
        template_id: UUID,
    ) -> None:
        """Test a template referenced by an instance keeps its steps and cannot be deleted."""
        await engine.start_workflow("doc-1", template_id, initiator_id="u-author")

        with pytest.raises(TemplateInUseError) as exc_info:
            await service.replace_steps(template_id, [StepSpec(order=1, name="Only", required_role="ADMIN")])
        assert exc_info.value.instance_count == 1

        with pytest.raises(TemplateInUseError):
            await service.delete_template(template_id)

        template = await service.get_template(template_id)
        assert [step.name for step in template.steps] == ["Manager Review", "Admin Approval"]

    async def test_used_template_metadata_editable(
        self,
        service: TemplateService,
        engine: ApprovalEngine,
        template_id: UUID,
    ) -> None:
        """Test metadata of a referenced template can still change."""
        await engine.start_workflow("doc-1", template_id, initiator_id="u-author")

        template = await service.update_template(template_id, is_active=False)

        assert not template.is_active


@pytest.mark.integration
class TestDeleteAndList:
    """Tests for deletion and listing."""

    async def test_delete_unused(self, service: TemplateService, template_id: UUID) -> None:
        """Test an unused template is deleted with its steps."""
        await service.delete_template(template_id)

        with pytest.raises(TemplateNotFoundError):
            await service.get_template(template_id)

    async def test_delete_missing(self, service: TemplateService) -> None:
        """Test deleting a missing template is reported."""
        with pytest.raises(TemplateNotFoundError):
            await service.delete_template(uuid4())

    async def test_list_active_by_name(self, service: TemplateService) -> None:
        """Test only active templates are listed, ordered by name."""
        step = [StepSpec(order=1, name="Review", required_role="MANAGER")]
        await service.create_template("Zoning", step)
        await service.create_template("Budget", step)
        retired = await service.create_template("Archive", step)
        await service.update_template(retired.id, is_active=False)

        assert [template.name for template in await service.list_active()] == ["Budget", "Zoning"]
