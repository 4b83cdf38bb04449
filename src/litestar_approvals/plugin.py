"""Litestar plugin for approval workflow integration.

This module provides the ApprovalsPlugin for integrating litestar-approvals with
Litestar applications.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from litestar.di import Provide
from litestar.plugins import InitPluginProtocol
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: TC002 - needed for DI

from litestar_approvals.config import ApprovalsConfig
from litestar_approvals.engine.approvals import ApprovalEngine
from litestar_approvals.engine.notify import LoggingNotifier
from litestar_approvals.engine.queries import ApprovalQueries
from litestar_approvals.engine.templates import TemplateService

if TYPE_CHECKING:
    from litestar.config.app import AppConfig

    from litestar_approvals.core.protocols import DocumentLookup, Notifier, UserDirectory

__all__ = ["ApprovalsPlugin", "ApprovalsPluginConfig"]


@dataclass
class ApprovalsPluginConfig:
    """Configuration for the ApprovalsPlugin.

    The plugin does not manage database sessions. The application must provide an
    ``AsyncSession`` under the ``db_session`` dependency key, which is what
    advanced-alchemy's ``SQLAlchemyPlugin`` does by default.

    Attributes:
        documents: Lookup used to validate documents when workflows start.
        users: Directory used for assignment and authority checks.
        notifier: Optional notifier. Defaults to a notifier that only logs.
        approvals: Role and deadline policy of the engine.
        enable_api: Whether to enable the REST API endpoints. Defaults to True.
        api_path_prefix: URL path prefix for all approval API endpoints.
            Defaults to "/approvals".
        api_guards: List of Litestar guards to apply to all approval API endpoints.
        api_tags: OpenAPI tags to apply to approval API endpoints.
        include_api_in_schema: Whether to include API endpoints in OpenAPI schema.
            Defaults to True.
    """

    documents: DocumentLookup
    users: UserDirectory
    notifier: Notifier | None = None
    approvals: ApprovalsConfig = field(default_factory=ApprovalsConfig)
    enable_api: bool = True
    api_path_prefix: str = "/approvals"
    api_guards: list[Any] = field(default_factory=list)
    api_tags: list[str] = field(default_factory=lambda: ["Approvals"])
    include_api_in_schema: bool = True


class ApprovalsPlugin(InitPluginProtocol):
    """Litestar plugin for document approval workflows.

    This plugin provides dependency injection for the approval engine, the read
    projections and the template service, registers the REST API and maps approval
    errors to HTTP responses.

    Injected dependencies:
        - ``approval_engine``: :class:`ApprovalEngine` bound to the request session
        - ``approval_queries``: :class:`ApprovalQueries` bound to the request session
        - ``template_service``: :class:`TemplateService` bound to the request session

    Example:
        Basic usage with advanced-alchemy session management::

            from advanced_alchemy.extensions.litestar import SQLAlchemyAsyncConfig, SQLAlchemyPlugin
            from litestar import Litestar
            from litestar_approvals import ApprovalsPlugin, ApprovalsPluginConfig

            app = Litestar(
                plugins=[
                    SQLAlchemyPlugin(config=SQLAlchemyAsyncConfig(connection_string="sqlite+aiosqlite:///app.db")),
                    ApprovalsPlugin(
                        config=ApprovalsPluginConfig(documents=DocumentStore(), users=UserStore())
                    ),
                ]
            )

        Using the engine in a route handler::

            @post("/documents/{document_id:str}/submit")
            async def submit(document_id: str, approval_engine: ApprovalEngine) -> dict:
                instance = await approval_engine.start_workflow(
                    document_id, TEMPLATE_ID, initiator_id="u-1"
                )
                return {"instance_id": str(instance.id), "status": instance.status}
    """

    __slots__ = ("_config", "_notifier")

    def __init__(self, config: ApprovalsPluginConfig) -> None:
        """Initialize the plugin.

        Args:
            config: Configuration for the plugin.
        """
        self._config = config
        self._notifier: Notifier = config.notifier or LoggingNotifier()

    @property
    def config(self) -> ApprovalsPluginConfig:
        """Get the plugin configuration.

        Returns:
            The ApprovalsPluginConfig instance.
        """
        return self._config

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Initialize the plugin when the Litestar app starts.

        This method:
        1. Adds the engine, query and template service providers to the app config
        2. Optionally registers REST API controllers if enable_api=True
        3. Registers the approval error handler

        Args:
            app_config: The Litestar application configuration.

        Returns:
            The modified application configuration.
        """
        config = self._config
        notifier = self._notifier

        # Create dependency providers
        def provide_approval_engine(db_session: AsyncSession) -> ApprovalEngine:
            return ApprovalEngine(
                db_session,
                documents=config.documents,
                users=config.users,
                notifier=notifier,
                config=config.approvals,
            )

        def provide_approval_queries(db_session: AsyncSession) -> ApprovalQueries:
            return ApprovalQueries(db_session)

        def provide_template_service(db_session: AsyncSession) -> TemplateService:
            return TemplateService(db_session)

        # Add dependencies to app config
        app_config.dependencies["approval_engine"] = Provide(provide_approval_engine, sync_to_thread=False)
        app_config.dependencies["approval_queries"] = Provide(provide_approval_queries, sync_to_thread=False)
        app_config.dependencies["template_service"] = Provide(provide_template_service, sync_to_thread=False)

        # Register REST API controllers if enabled
        if config.enable_api:
            from litestar import Router

            from litestar_approvals.web.controllers import (
                ApprovalTaskController,
                StatisticsController,
                TemplateController,
                WorkflowInstanceController,
            )

            approvals_router = Router(
                path=config.api_path_prefix,
                route_handlers=[
                    WorkflowInstanceController,
                    ApprovalTaskController,
                    TemplateController,
                    StatisticsController,
                ],
                guards=config.api_guards,
                tags=config.api_tags,
                include_in_schema=config.include_api_in_schema,
            )
            app_config.route_handlers.append(approvals_router)

        # Register exception handler
        from litestar_approvals.exceptions import ApprovalsError
        from litestar_approvals.web.exceptions import approvals_error_handler

        app_config.exception_handlers[ApprovalsError] = approvals_error_handler  # type: ignore[assignment]

        return app_config
