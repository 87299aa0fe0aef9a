"""Connwatch Core -- connection health checks on a cron schedule.

Manifesto:
    Teams register the databases and APIs their applications depend on and
    want to know, before their users do, when one stops answering. Core
    holds everything needed to answer that on a schedule: credential
    encryption, cron planning, connectivity probes with a shared error
    taxonomy, a schedule store, and the polling dispatcher that ties them
    together.

Architecture::

    Layer 1 -- Type System & Errors
        errors.py          Structured error hierarchy (ConnwatchError, ProbeError)
        models/            Dataclass models for schedules, connections, outcomes

    Layer 2 -- Cross-Cutting Concerns
        logging.py         Structured logging (structlog)
        settings.py        ConnwatchSettings (pydantic-settings, CONNWATCH_ env)
        secrets.py         SecretValue + CredentialCipher (AES-256-CBC)

    Layer 3 -- Probes
        probes/            One probe per technology + error taxonomy

    Layer 4 -- Scheduling
        scheduling/        CronPlanner, store, runner, polling dispatcher
"""
