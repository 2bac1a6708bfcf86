# src/alchemist/validator/references.py
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from alchemist.schemas.models import EntityType, ErrorType, ValidationError, as_record
from alchemist.validator.structural import id_key, is_blank, is_sequence, stable_elements

logger = logging.getLogger(__name__)


def validate_references(
    clients: Iterable[Any], workers: Iterable[Any], tasks: Iterable[Any]
) -> list[ValidationError]:
    """
    @brief
    Cross-entity validation: task references and skill coverage.

    @details
    Emits one `unknownReference` error per RequestedTaskIDs entry that names
    no existing TaskID, and one `skillCoverage` error per RequiredSkills
    entry that no worker possesses. List columns that are not sequences are
    skipped here; the structural pass already reports them.

    @params
        clients, workers, tasks : Iterable[Any]
            Raw rows or typed entities.

    @returns
        Client reference errors first, then task coverage errors,
        each in row order.
    """
    client_rows = [as_record(c) for c in clients]
    worker_rows = [as_record(w) for w in workers]
    task_rows = [as_record(t) for t in tasks]

    errors: list[ValidationError] = []
    errors.extend(_check_task_references(client_rows, task_rows))
    errors.extend(_check_skill_coverage(worker_rows, task_rows))
    return errors


def validate_circular_dependencies(
    clients: Iterable[Any], workers: Iterable[Any], tasks: Iterable[Any]
) -> list[ValidationError]:
    """
    @brief
    Extension point for data-level task prerequisite cycles.

    @details
    Task rows carry no prerequisite column yet, so there is nothing to walk
    and the check reports nothing. Co-run cycles between rules are a
    different concern, handled by alchemist.rules.analyzer.detect_cycles.
    """
    return []


def _check_task_references(
    client_rows: list[Mapping[str, Any]], task_rows: list[Mapping[str, Any]]
) -> list[ValidationError]:
    # (1) Collect every known TaskID once
    task_ids = {
        id_key(row.get("TaskID")) for row in task_rows if not is_blank(row.get("TaskID"))
    }

    # (2) Resolve each requested ID per client row
    errors: list[ValidationError] = []
    for index, row in enumerate(client_rows):
        requested = row.get("RequestedTaskIDs")
        if not is_sequence(requested):
            continue
        for task_id in requested:
            if id_key(task_id) in task_ids:
                continue
            errors.append(
                ValidationError(
                    entity_type=EntityType.CLIENTS,
                    row_index=index,
                    field="RequestedTaskIDs",
                    error_type=ErrorType.UNKNOWN_REFERENCE,
                    message=f"Unknown TaskID referenced: {task_id}",
                    suggestion="Ensure all referenced TaskIDs exist in the tasks data",
                )
            )
    return errors


def _check_skill_coverage(
    worker_rows: list[Mapping[str, Any]], task_rows: list[Mapping[str, Any]]
) -> list[ValidationError]:
    # (1) Union of all worker skills
    worker_skills: set[Any] = set()
    for row in worker_rows:
        skills = row.get("Skills")
        if is_sequence(skills, unordered_ok=True):
            worker_skills.update(id_key(skill) for skill in skills)

    # (2) Every required skill must be covered by some worker
    errors: list[ValidationError] = []
    for index, row in enumerate(task_rows):
        required = row.get("RequiredSkills")
        if not is_sequence(required, unordered_ok=True):
            continue
        for skill in stable_elements(required):
            if id_key(skill) in worker_skills:
                continue
            errors.append(
                ValidationError(
                    entity_type=EntityType.TASKS,
                    row_index=index,
                    field="RequiredSkills",
                    error_type=ErrorType.SKILL_COVERAGE,
                    message=f"No worker has the required skill: {skill}",
                    suggestion="Add workers with this skill or update the required skills",
                )
            )

    if errors:
        logger.debug("Skill coverage: %d uncovered requirement(s)", len(errors))
    return errors


__all__ = ["validate_references", "validate_circular_dependencies"]
