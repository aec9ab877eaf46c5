"""
Typed exception hierarchy for the batch launcher.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The startup runner has to tell apart errors that abort the whole startup
(an ambiguous or unknown job selection) from errors that only affect one
job (a launch the launcher refused).  Callers catch by type, never by
message text:

    try:
        runner.run(*args)
    except JobSelectionError as e:
        log.error("selection failed", extra={"code": e.code})

Every exception has:
  1. a TYPED class (catch by type, not message),
  2. a CODE class attribute (machine-readable, log-safe),
  3. structured DATA attributes (not just a message string).

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BatchLaunchError (base)
    |
    +-- JobSelectionError
    |   +-- NoJobSpecifiedError
    |   +-- JobNotFoundError
    |
    +-- LaunchRejectedError
    |   +-- JobExecutionAlreadyRunningError
    |   +-- JobInstanceAlreadyCompleteError
    |   +-- JobRestartError
    |   +-- JobParametersInvalidError
    |
    +-- JobExecutionFailedError
    +-- DuplicateJobError
    +-- BatchConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                          | When Raised
-----------|-------------------------------|------------------------------------
Selection  | NO_JOB_SPECIFIED              | Several jobs known, none selected
           | JOB_NOT_FOUND                 | Configured job name is unknown
-----------|-------------------------------|------------------------------------
Launch     | JOB_EXECUTION_ALREADY_RUNNING | Same job instance is running
           | JOB_INSTANCE_ALREADY_COMPLETE | Same job instance already finished
           | JOB_RESTART_REJECTED          | Job is not restartable
           | JOB_PARAMETERS_INVALID        | Parameters failed validation/parse
-----------|-------------------------------|------------------------------------
Execution  | JOB_EXECUTION_FAILED          | Job ran and ended unsuccessfully
-----------|-------------------------------|------------------------------------
Catalog    | DUPLICATE_JOB                 | Job name registered twice
Config     | BATCH_CONFIGURATION_INVALID   | Bad property value

===============================================================================
PROPAGATION
===============================================================================

JobSelectionError subclasses abort the startup runner before any launch.
LaunchRejectedError subclasses are captured per job as a FAILED outcome so
that later configured jobs are still attempted.  Both end up in the exit code.
"""


class BatchLaunchError(Exception):
    """
    Base exception for all batch launcher errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BATCH_LAUNCH_ERROR"


# Selection


class JobSelectionError(BatchLaunchError):
    """Base exception for errors resolving which jobs to run."""

    code: str = "JOB_SELECTION_ERROR"


class NoJobSpecifiedError(JobSelectionError):
    """Several jobs are eligible and no job name was configured."""

    code: str = "NO_JOB_SPECIFIED"

    def __init__(self, candidates: list[str]):
        self.candidates = candidates
        super().__init__(
            "Job name must be specified in case of multiple jobs: "
            f"{', '.join(candidates)}"
        )


class JobNotFoundError(JobSelectionError):
    """A configured job name does not resolve to any known job."""

    code: str = "JOB_NOT_FOUND"

    def __init__(self, job_name: str, available: list[str] | None = None):
        self.job_name = job_name
        self.available = available or []
        super().__init__(f"No job found with name '{job_name}'")


# Launch


class LaunchRejectedError(BatchLaunchError):
    """Base exception for launches refused by the job launcher."""

    code: str = "LAUNCH_REJECTED"


class JobExecutionAlreadyRunningError(LaunchRejectedError):
    """An execution of the same job instance is still running."""

    code: str = "JOB_EXECUTION_ALREADY_RUNNING"

    def __init__(self, job_name: str, execution_id: int | None):
        self.job_name = job_name
        self.execution_id = execution_id
        super().__init__(
            f"A job execution for this job is already running: "
            f"{job_name} (execution {execution_id})"
        )


class JobInstanceAlreadyCompleteError(LaunchRejectedError):
    """The job instance for these parameters already completed."""

    code: str = "JOB_INSTANCE_ALREADY_COMPLETE"

    def __init__(self, job_name: str, job_key: str):
        self.job_name = job_name
        self.job_key = job_key
        super().__init__(
            f"A job instance already exists and is complete for "
            f"job={job_name}, key={job_key}. "
            "If you want to run this job again, change the parameters."
        )


class JobRestartError(LaunchRejectedError):
    """The job instance ran before and the job is not restartable."""

    code: str = "JOB_RESTART_REJECTED"

    def __init__(self, job_name: str):
        self.job_name = job_name
        super().__init__(
            f"JobInstance already exists and is not restartable: {job_name}"
        )


class JobParametersInvalidError(LaunchRejectedError):
    """Job parameters could not be parsed or failed job validation."""

    code: str = "JOB_PARAMETERS_INVALID"

    def __init__(self, reason: str, job_name: str | None = None):
        self.reason = reason
        self.job_name = job_name
        prefix = f"Invalid parameters for job '{job_name}'" if job_name else "Invalid job parameters"
        super().__init__(f"{prefix}: {reason}")


# Execution


class JobExecutionFailedError(BatchLaunchError):
    """A job ran and ended in an unsuccessful state."""

    code: str = "JOB_EXECUTION_FAILED"

    def __init__(self, job_name: str, status: str, exit_description: str = ""):
        self.job_name = job_name
        self.status = status
        self.exit_description = exit_description
        message = f"Job '{job_name}' finished with status {status}"
        if exit_description:
            message = f"{message}: {exit_description}"
        super().__init__(message)


# Catalog


class DuplicateJobError(BatchLaunchError):
    """A job with the same name is already registered."""

    code: str = "DUPLICATE_JOB"

    def __init__(self, job_name: str):
        self.job_name = job_name
        super().__init__(f"Job '{job_name}' is already registered")


# Configuration


class BatchConfigurationError(BatchLaunchError):
    """A batch property has an invalid value."""

    code: str = "BATCH_CONFIGURATION_INVALID"

    def __init__(self, key: str, value: object, reason: str):
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value {value!r} for '{key}': {reason}")
