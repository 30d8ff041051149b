from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from loguru import logger
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import (
    DEPLOYMENT_ENVIRONMENT,
    SERVICE_NAME,
    Resource,
)
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_fastapi_instrumentator.instrumentation import (
    PrometheusFastApiInstrumentator,
)
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from taskflow.auth.services import ensure_superadmin
from taskflow.db.meta import meta
from taskflow.db.models import load_all_models
from taskflow.settings import settings


async def _setup_db(app: FastAPI) -> None:  # pragma: no cover
    """
    Creates connection to the database.

    This function creates SQLAlchemy engine instance,
    session_factory for creating sessions
    and stores them in the application's state property.
    Tables are created directly only when ``settings.should_create_all``;
    otherwise the schema comes from alembic migrations.

    :param app: fastAPI application.
    """
    engine = create_async_engine(settings.db_url, echo=settings.db_echo)
    session_factory = async_sessionmaker(
        engine,
        expire_on_commit=False,
    )
    app.state.db_engine = engine
    app.state.db_session_factory = session_factory

    if settings.should_create_all:
        load_all_models()
        async with engine.begin() as connection:
            await connection.run_sync(meta.create_all)
        logger.info("Database tables created")


async def _seed_superadmin(app: FastAPI) -> None:  # pragma: no cover
    async with app.state.db_session_factory() as session:
        await ensure_superadmin(
            session,
            email=settings.superadmin_email,
            otp=settings.superadmin_otp,
            name=settings.superadmin_name,
        )
        await session.commit()


def setup_opentelemetry(app: FastAPI) -> Optional[TracerProvider]:
    """
    Trace requests and the queries they run, when a collector is configured.

    Spans go to ``settings.opentelemetry_endpoint`` over OTLP/gRPC. Health
    checks and metric scrapes are not traced.

    :param app: current application.
    :return: the tracer provider, or None when tracing is off.
    """
    if not settings.opentelemetry_endpoint:
        return None

    tracer_provider = TracerProvider(
        resource=Resource(
            attributes={
                SERVICE_NAME: "taskflow",
                DEPLOYMENT_ENVIRONMENT: settings.environment,
            },
        ),
    )
    tracer_provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(endpoint=settings.opentelemetry_endpoint, insecure=True),
        ),
    )

    FastAPIInstrumentor().instrument_app(
        app,
        tracer_provider=tracer_provider,
        excluded_urls=",".join([app.url_path_for("health_check"), "/metrics"]),
    )
    SQLAlchemyInstrumentor().instrument(
        tracer_provider=tracer_provider,
        engine=app.state.db_engine.sync_engine,
    )
    app.state.tracer_provider = tracer_provider
    return tracer_provider


def stop_opentelemetry(app: FastAPI) -> None:
    """Undo setup_opentelemetry and flush pending spans."""
    tracer_provider = getattr(app.state, "tracer_provider", None)
    if tracer_provider is None:
        return

    FastAPIInstrumentor().uninstrument_app(app)
    SQLAlchemyInstrumentor().uninstrument()
    tracer_provider.shutdown()
    app.state.tracer_provider = None


def setup_prometheus(app: FastAPI) -> None:  # pragma: no cover
    """
    Enables prometheus integration.

    :param app: current application.
    """
    if not settings.prometheus_enabled:
        return
    PrometheusFastApiInstrumentator(should_group_status_codes=False).instrument(
        app,
    ).expose(app, should_gzip=True, name="prometheus_metrics")


@asynccontextmanager
async def lifespan_setup(
    app: FastAPI,
) -> AsyncGenerator[None, None]:  # pragma: no cover
    """
    Actions to run on application startup.

    This function uses fastAPI app to store data
    in the state, such as db_engine.

    :param app: the fastAPI application.
    :return: function that actually performs actions.
    """

    app.middleware_stack = None
    await _setup_db(app)
    await _seed_superadmin(app)
    setup_opentelemetry(app)
    setup_prometheus(app)
    app.middleware_stack = app.build_middleware_stack()

    yield
    stop_opentelemetry(app)
    await app.state.db_engine.dispose()
