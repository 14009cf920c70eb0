"""
Task Manager service.
Exposes CRUD endpoints for tasks backed by PostgreSQL with an optional Redis cache.
"""

import asyncio
from contextlib import asynccontextmanager, suppress
from time import perf_counter
from typing import Dict, Optional

from fastapi import FastAPI, Query, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.config import BaseConfig, get_config
from shared.errors import (
    ErrorResponse,
    InvalidInputError,
    StorageError,
    TaskManagerException,
    TaskNotFoundError,
)
from shared.logging import clear_context, configure_logging, get_logger, set_request_id
from shared.metrics import MetricsCollector
from shared.tracing import configure_tracing

from .cache import RedisTaskCache, TaskCache
from .models import CreateTaskRequest, Task, TaskFilter, TaskListResponse, UpdateTaskRequest
from .repository import InMemoryTaskRepository, PostgresTaskRepository, TaskRepository
from .service import TaskService

SERVICE_NAME = "task-manager"

_STATUS_CODES = {
    InvalidInputError: status.HTTP_400_BAD_REQUEST,
    TaskNotFoundError: status.HTTP_404_NOT_FOUND,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def build_repository(config: BaseConfig) -> TaskRepository:
    """Build the task store selected by configuration."""
    if config.storage_backend == "memory":
        return InMemoryTaskRepository()
    return PostgresTaskRepository(
        config.postgres_dsn,
        min_pool_size=config.postgres_min_pool_size,
        max_pool_size=config.postgres_max_pool_size,
        command_timeout=config.postgres_command_timeout,
    )


def build_cache(config: BaseConfig) -> Optional[TaskCache]:
    """Build the task cache, or None when caching is disabled."""
    if not config.cache_enabled:
        return None
    return RedisTaskCache(
        config.redis_url,
        ttl_seconds=config.cache_ttl_seconds,
        socket_timeout=config.redis_socket_timeout,
    )


class TaskManagerService:
    """Task Manager service implementation."""

    def __init__(
        self,
        config: Optional[BaseConfig] = None,
        *,
        repository: Optional[TaskRepository] = None,
        cache: Optional[TaskCache] = None,
    ):
        self.config = config or get_config()
        configure_logging(SERVICE_NAME, self.config.log_level, self.config.log_format)
        self.logger = get_logger(f"{SERVICE_NAME}.api")
        self.metrics = MetricsCollector(SERVICE_NAME)

        self.repository = repository if repository is not None else build_repository(self.config)
        self.cache = cache if cache is not None else build_cache(self.config)
        self.task_service = TaskService(self.repository, self.cache, metrics=self.metrics)
        self._count_reporter: Optional[asyncio.Task] = None

        self.app = FastAPI(
            title="Task Manager API",
            description="CRUD API for tasks with a cache-aside Redis layer",
            version="1.0.0",
            docs_url="/docs" if self.config.is_development() else None,
            redoc_url="/redoc" if self.config.is_development() else None,
            lifespan=self._lifespan,
        )

        if self.config.enable_tracing:
            configure_tracing(
                SERVICE_NAME,
                self.config.otel_exporter,
                environment=self.config.env,
                enable_console=self.config.enable_console_tracing,
                app=self.app,
            )

        self._setup_routes()
        self._setup_middleware()
        self._setup_exception_handlers()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        await self.repository.start()

        if self.cache is not None:
            try:
                await self.cache.start()
            except TaskManagerException as exc:
                self.logger.warning("Cache unavailable, running without cache", error=exc.message)
                self.cache = None
                self.task_service.cache = None

        self._count_reporter = asyncio.create_task(self._report_task_count())
        self.logger.info("Task manager started", cache_enabled=self.cache is not None)
        try:
            yield
        finally:
            self._count_reporter.cancel()
            with suppress(asyncio.CancelledError):
                await self._count_reporter
            if self.cache is not None:
                await self.cache.stop()
            await self.repository.stop()
            self.logger.info("Task manager stopped")

    async def _report_task_count(self):
        """Periodically publish the task count gauge."""
        while True:
            try:
                count = await self.task_service.get_task_count()
            except StorageError as exc:
                self.logger.warning("Task count report failed", error=exc.message)
            except Exception as exc:
                self.logger.error("Task count report failed", error=str(exc), exc_info=True)
            else:
                self.metrics.set_tasks_count(count)
            await asyncio.sleep(self.config.count_report_interval_seconds)

    async def _with_deadline(self, awaitable):
        """Bound a service call by the configured request timeout."""
        return await asyncio.wait_for(awaitable, timeout=self.config.request_timeout_seconds)

    def _setup_routes(self):
        """Set up API routes."""

        @self.app.post("/api/v1/tasks", response_model=Task, status_code=status.HTTP_201_CREATED)
        async def create_task(request: CreateTaskRequest):
            """Create a new task."""
            return await self._with_deadline(self.task_service.create_task(request))

        @self.app.get("/api/v1/tasks", response_model=TaskListResponse)
        async def list_tasks(
            status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
            assignee: Optional[str] = Query(None, description="Filter by assignee"),
            page: int = Query(1, description="Page number"),
            page_size: int = Query(10, description="Page size (max 100)"),
        ):
            """List tasks with optional filters and pagination."""
            task_filter = TaskFilter(
                status=status_filter,
                assignee=assignee,
                page=page,
                page_size=page_size,
            )
            return await self._with_deadline(self.task_service.list_tasks(task_filter))

        @self.app.get("/api/v1/tasks/{task_id}", response_model=Task)
        async def get_task(task_id: str):
            """Get task by ID."""
            return await self._with_deadline(self.task_service.get_task(task_id))

        @self.app.put("/api/v1/tasks/{task_id}", response_model=Task)
        async def update_task(task_id: str, request: UpdateTaskRequest):
            """Update an existing task."""
            return await self._with_deadline(self.task_service.update_task(task_id, request))

        @self.app.delete(
            "/api/v1/tasks/{task_id}",
            status_code=status.HTTP_204_NO_CONTENT,
            response_class=Response,
        )
        async def delete_task(task_id: str):
            """Delete a task."""
            await self._with_deadline(self.task_service.delete_task(task_id))
            return Response(status_code=status.HTTP_204_NO_CONTENT)

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            dependencies: Dict[str, str] = {
                "storage": "ok" if await self.repository.health_check() else "error",
                "cache": "disabled",
            }
            if self.cache is not None:
                dependencies["cache"] = "ok" if await self.cache.health_check() else "error"

            healthy = dependencies["storage"] == "ok"
            return JSONResponse(
                status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
                content={
                    "status": "healthy" if healthy else "unhealthy",
                    "service": SERVICE_NAME,
                    "dependencies": dependencies,
                },
            )

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            from prometheus_client import CONTENT_TYPE_LATEST
            return Response(content=self.metrics.render(), media_type=CONTENT_TYPE_LATEST)

    def _setup_middleware(self):
        """Set up middleware."""

        @self.app.middleware("http")
        async def observability_middleware(request: Request, call_next):
            start_time = perf_counter()
            request_id = set_request_id(
                request.headers.get("x-request-id") or request.headers.get("x-correlation-id")
            )
            try:
                response = await call_next(request)
            except Exception as exc:
                self.logger.error(
                    "Unhandled exception",
                    method=request.method,
                    path=request.url.path,
                    error=str(exc),
                )
                raise
            else:
                duration = perf_counter() - start_time
                route = request.scope.get("route")
                endpoint = getattr(route, "path", request.url.path)
                self.metrics.record_http_request(request.method, endpoint, response.status_code, duration)
                self.logger.info(
                    "HTTP request",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round(duration * 1000, 2),
                )
                response.headers["X-Process-Time"] = f"{duration:.6f}"
                response.headers["X-Request-Id"] = request_id
                return response
            finally:
                clear_context()

    def _setup_exception_handlers(self):
        """Map service errors onto HTTP responses."""

        @self.app.exception_handler(TaskManagerException)
        async def task_manager_exception_handler(request: Request, exc: TaskManagerException):
            status_code = _STATUS_CODES.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
            if status_code >= 500:
                self.logger.error("Task operation failed", code=exc.code, message=exc.message)
                self.metrics.record_error(exc.code)
            return JSONResponse(status_code=status_code, content=exc.to_response().model_dump(mode="json"))

        @self.app.exception_handler(RequestValidationError)
        async def validation_exception_handler(request: Request, exc: RequestValidationError):
            error = InvalidInputError("Malformed request", {"errors": jsonable_encoder(exc.errors())})
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=error.to_response().model_dump(mode="json"),
            )

        @self.app.exception_handler(asyncio.TimeoutError)
        async def timeout_exception_handler(request: Request, exc: asyncio.TimeoutError):
            self.logger.error("Request deadline exceeded", path=request.url.path)
            self.metrics.record_error("TIMEOUT")
            return JSONResponse(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                content=ErrorResponse(code="TIMEOUT", message="Request deadline exceeded").model_dump(),
            )

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )


def create_app(config: Optional[BaseConfig] = None) -> FastAPI:
    """Create FastAPI application."""
    return TaskManagerService(config).app


def main():
    """Console entry point."""
    TaskManagerService().run()


if __name__ == "__main__":
    main()
