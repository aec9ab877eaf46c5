"""
BatchOrchestrator -- composition root for the startup batch launcher.

Contract:
    ``from_properties()`` wires the metadata tables, the job repository and
    explorer, the launcher, the parameter converter, the exit-code
    generator, the schema initializer and (when ``batch.job.enabled``) the
    startup runner.  ``run(args)`` performs one startup pass and returns the
    process exit code.

Architecture: batch_launch (top-level).  Single place where the launcher's
    dependencies are composed; nothing else constructs repositories or
    runners for production use.

Invariants enforced:
    - Clock injection: every component receives the same Clock.
    - Metadata-store override: a dedicated batch engine (explicit, or built
      from ``batch.jdbc.url``) wins over the application engine.
    - An isolation level the metadata store cannot honour is rejected at
      assembly time, not on the first launch.
    - Exit-code generator: a default one is created only when the caller
      does not supply its own.

Non-goals:
    - Does NOT call ``sys.exit`` -- the CLI does.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from concurrent.futures import Executor
from uuid import uuid4

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from batch_config.schema import BatchProperties
from batch_kernel.db.engine import create_engine_from_url, supports_isolation
from batch_kernel.domain.clock import Clock, SystemClock
from batch_kernel.exceptions import BatchConfigurationError
from batch_kernel.logging_config import LogContext, get_logger

from batch_launch.catalog import DEFAULT_DISCOVERY_ORDER, JobCatalog, JobSource
from batch_launch.domain.types import JobExecution
from batch_launch.exit_codes import JobExecutionExitCodeGenerator
from batch_launch.launcher import SimpleJobLauncher
from batch_launch.parameters import (
    DefaultJobParametersConverter,
    ParameterConverterCustomizer,
)
from batch_launch.repository.explorer import JobExplorer
from batch_launch.repository.job_repository import JobRepository
from batch_launch.repository.tables import BatchTables, build_batch_tables
from batch_launch.runner import StartupJobRunner
from batch_launch.schema import BatchSchemaInitializer

logger = get_logger("launch.orchestrator")


class BatchOrchestrator:
    """Composition root for one startup batch run.

    Contract:
        - ``from_properties()`` factory creates a fully wired orchestrator.
        - ``run(args)`` returns the exit code; it never raises for job or
          selection failures.
        - ``runner`` is None when ``batch.job.enabled`` is false.

    Non-goals:
        - Does NOT own a task executor it was handed -- the caller shuts it
          down.  ``shutdown()`` forwards to the launcher and disposes
          only the engine built from ``batch.jdbc.url``.
    """

    def __init__(
        self,
        properties: BatchProperties,
        engine: Engine,
        tables: BatchTables,
        repository: JobRepository,
        explorer: JobExplorer,
        launcher: SimpleJobLauncher,
        converter: DefaultJobParametersConverter,
        exit_code_generator: JobExecutionExitCodeGenerator,
        schema_initializer: BatchSchemaInitializer,
        runner: StartupJobRunner | None,
        clock: Clock,
        owns_engine: bool = False,
    ) -> None:
        self._properties = properties
        self._engine = engine
        self._tables = tables
        self._repository = repository
        self._explorer = explorer
        self._launcher = launcher
        self._converter = converter
        self._exit_code_generator = exit_code_generator
        self._schema_initializer = schema_initializer
        self._runner = runner
        self._clock = clock
        self._owns_engine = owns_engine

    # -------------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------------

    @classmethod
    def from_properties(
        cls,
        properties: BatchProperties,
        engine: Engine,
        catalog: JobCatalog,
        registry: JobCatalog | None = None,
        batch_engine: Engine | None = None,
        launcher: SimpleJobLauncher | None = None,
        exit_code_generator: JobExecutionExitCodeGenerator | None = None,
        task_executor: Executor | None = None,
        converter_customizers: Iterable[ParameterConverterCustomizer] = (),
        clock: Clock | None = None,
        discovery_order: Sequence[JobSource] = DEFAULT_DISCOVERY_ORDER,
    ) -> BatchOrchestrator:
        """Create a fully wired BatchOrchestrator.

        Args:
            properties: Parsed ``batch:`` configuration.
            engine: Application engine; used for the metadata store unless
                a batch engine is given or ``batch.jdbc.url`` is set.
            catalog: Explicitly registered jobs.
            registry: Optional secondary job registry.
            batch_engine: Optional dedicated metadata-store engine.
            launcher: Optional pre-built launcher.  If None, one is built on
                ``task_executor`` (synchronous when that is None too).
            exit_code_generator: Optional generator; a default is created
                when None.
            converter_customizers: Applied in order to the parameter
                converter table.
            clock: Optional clock for deterministic testing.
            discovery_order: Precedence of the catalog and the registry.

        Raises:
            BatchConfigurationError: If the metadata store's dialect cannot
                honour ``batch.jdbc.isolation_level_for_create``.
            sqlalchemy.exc.ArgumentError: If ``batch.jdbc.url`` is malformed.
        """
        effective_clock = clock or SystemClock()

        store_engine = batch_engine
        owns_engine = False
        if store_engine is None and properties.jdbc.url:
            store_engine = create_engine_from_url(properties.jdbc.url)
            owns_engine = True
        if store_engine is None:
            store_engine = engine

        isolation = properties.jdbc.effective_isolation_level_for_create
        if not supports_isolation(store_engine, isolation):
            if owns_engine:
                store_engine.dispose()
            raise BatchConfigurationError(
                "batch.jdbc.isolation_level_for_create",
                isolation.value,
                f"not supported by the {store_engine.dialect.name} metadata store",
            )

        tables = build_batch_tables(properties.jdbc.effective_table_prefix)
        session_factory: sessionmaker[Session] = sessionmaker(
            bind=store_engine, expire_on_commit=False,
        )
        converter = DefaultJobParametersConverter(customizers=converter_customizers)

        repository = JobRepository(
            session_factory,
            tables,
            clock=effective_clock,
            isolation_level_for_create=isolation,
            converter=converter,
        )
        explorer = JobExplorer(session_factory, tables, converter)

        if launcher is None:
            launcher = SimpleJobLauncher(repository, task_executor, effective_clock)

        generator = exit_code_generator or JobExecutionExitCodeGenerator()

        runner = None
        if properties.job.enabled:
            runner = StartupJobRunner(
                launcher,
                catalog,
                registry=registry,
                explorer=explorer,
                job_names=properties.job.name,
                discovery_order=discovery_order,
                converter=converter,
                listeners=(generator,),
                clock=effective_clock,
            )

        schema_initializer = BatchSchemaInitializer(
            store_engine, tables, properties.jdbc.initialize_schema,
        )

        logger.info(
            "batch_orchestrator_assembled",
            extra={
                "runner_enabled": runner is not None,
                "dedicated_store": store_engine is not engine,
                "table_prefix": tables.prefix,
                "isolation_level_for_create": repository.isolation_level_for_create.value,
                "asynchronous": launcher.is_asynchronous,
            },
        )

        return cls(
            properties=properties,
            engine=store_engine,
            tables=tables,
            repository=repository,
            explorer=explorer,
            launcher=launcher,
            converter=converter,
            exit_code_generator=generator,
            schema_initializer=schema_initializer,
            runner=runner,
            clock=effective_clock,
            owns_engine=owns_engine,
        )

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def properties(self) -> BatchProperties:
        return self._properties

    @property
    def engine(self) -> Engine:
        """Engine backing the metadata store."""
        return self._engine

    @property
    def tables(self) -> BatchTables:
        return self._tables

    @property
    def repository(self) -> JobRepository:
        return self._repository

    @property
    def explorer(self) -> JobExplorer:
        return self._explorer

    @property
    def launcher(self) -> SimpleJobLauncher:
        return self._launcher

    @property
    def converter(self) -> DefaultJobParametersConverter:
        return self._converter

    @property
    def exit_code_generator(self) -> JobExecutionExitCodeGenerator:
        return self._exit_code_generator

    @property
    def schema_initializer(self) -> BatchSchemaInitializer:
        return self._schema_initializer

    @property
    def runner(self) -> StartupJobRunner | None:
        return self._runner

    # -------------------------------------------------------------------------
    # Startup run
    # -------------------------------------------------------------------------

    def run(self, args: Sequence[str] = (), wait: bool = True) -> int:
        """Initialize the schema, run the startup jobs and map the exit code.

        With ``wait=True`` asynchronous executions are awaited before the
        exit code is computed.
        """
        with LogContext.bind(correlation_id=str(uuid4())):
            self._schema_initializer.initialize()

            if self._runner is None:
                logger.info("startup_runner_disabled")
                return self._exit_code_generator.get_exit_code()

            try:
                executions = self._runner.run(*args)
            except Exception:
                # Selection and store errors are already published to the
                # exit-code generator by the runner.
                executions = []

            if wait:
                self._await(executions)

            exit_code = self._exit_code_generator.get_exit_code()
            logger.info(
                "startup_run_finished",
                extra={
                    "exit_code": exit_code,
                    "executions": [
                        {"job_name": e.job_name, "status": e.status.value}
                        for e in executions
                    ],
                },
            )
            return exit_code

    def shutdown(self, wait: bool = True) -> None:
        self._launcher.shutdown(wait=wait)
        if self._owns_engine:
            self._engine.dispose()

    def _await(self, executions: Iterable[JobExecution]) -> None:
        for execution in executions:
            execution.wait()
