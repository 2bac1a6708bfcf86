# tests/validator/test_structural.py
import logging

import pytest

from alchemist.schemas.models import Client, ErrorType, Worker
from alchemist.validator.structural import validate_entities


def _types(errors):
    return [e.error_type for e in errors]


def test_clean_collections_produce_no_errors(clients, workers, tasks):
    """
    @brief
    Structurally valid rows yield no findings.
    """
    # --- Act / Assert ---
    assert validate_entities("clients", clients) == []
    assert validate_entities("workers", workers) == []
    assert validate_entities("tasks", tasks) == []


def test_missing_columns_reported_once_against_first_row():
    """
    @brief
    Required columns are checked once, with row index -1.

    @details
    The single error lists every absent column, comma-joined, in the
    declared column order.
    """
    # --- Arrange ---
    records = [{"ClientID": "C1"}, {"ClientID": "C2", "ClientName": "x"}]

    # --- Act ---
    errors = validate_entities("clients", records)

    # --- Assert ---
    assert len(errors) == 1
    err = errors[0]
    assert err.error_type == ErrorType.MISSING_COLUMN
    assert err.row_index == -1
    assert err.field == "ClientName, PriorityLevel, RequestedTaskIDs, GroupTag, AttributesJSON"
    assert err.message == f"Missing required columns: {err.field}"


def test_empty_collection_reports_all_columns_missing():
    # --- Act ---
    errors = validate_entities("tasks", [])

    # --- Assert ---
    assert _types(errors) == [ErrorType.MISSING_COLUMN]
    assert errors[0].field == "TaskID, Duration, RequiredSkills, PreferredPhases, MaxConcurrent"


def test_duplicate_id_reports_second_occurrence_only():
    """
    @brief
    Two rows sharing ClientID produce exactly one duplicateId at row 1.
    """
    # --- Arrange ---
    records = [{"ClientID": "C1"}, {"ClientID": "C1"}]

    # --- Act ---
    errors = validate_entities("clients", records)

    # --- Assert ---
    duplicates = [e for e in errors if e.error_type == ErrorType.DUPLICATE_ID]
    assert len(duplicates) == 1
    assert duplicates[0].row_index == 1
    assert duplicates[0].field == "ClientID"
    assert duplicates[0].message == "Duplicate ClientID: C1"


def test_every_later_duplicate_is_reported(workers):
    # --- Arrange ---
    records = workers + [dict(workers[0]), dict(workers[0])]

    # --- Act ---
    errors = validate_entities("workers", records)

    # --- Assert ---
    assert [(e.error_type, e.row_index) for e in errors] == [
        (ErrorType.DUPLICATE_ID, 2),
        (ErrorType.DUPLICATE_ID, 3),
    ]


def test_blank_ids_are_not_duplicates(tasks):
    # --- Arrange ---
    first, second = tasks
    first["TaskID"] = ""
    second["TaskID"] = ""

    # --- Act ---
    errors = validate_entities("tasks", [first, second])

    # --- Assert ---
    assert ErrorType.DUPLICATE_ID not in _types(errors)


@pytest.mark.parametrize("priority, expected", [(3, 0), (1, 0), (5, 0), (7, 1), (0, 1)])
def test_priority_level_range(clients, priority, expected):
    """
    @brief
    PriorityLevel must lie in [1, 5].
    """
    # --- Arrange ---
    row = clients[0]
    row["PriorityLevel"] = priority

    # --- Act ---
    errors = validate_entities("clients", [row])

    # --- Assert ---
    assert len(errors) == expected
    if expected:
        assert errors[0].error_type == ErrorType.OUT_OF_RANGE
        assert errors[0].field == "PriorityLevel"
        assert errors[0].row_index == 0


@pytest.mark.parametrize("value", ["high", "3", True, None, float("nan")])
def test_non_numeric_range_values_are_out_of_range(clients, value):
    # --- Arrange ---
    row = clients[0]
    row["PriorityLevel"] = value

    # --- Act ---
    errors = validate_entities("clients", [row])

    # --- Assert ---
    assert _types(errors) == [ErrorType.OUT_OF_RANGE]


def test_task_and_worker_bounds(workers, tasks):
    """
    @brief
    Duration must be positive; loads, qualification and concurrency non-negative.
    """
    # --- Arrange ---
    tasks[0]["Duration"] = 0
    tasks[1]["MaxConcurrent"] = -1
    workers[0]["MaxLoadPerPhase"] = -2
    workers[1]["QualificationLevel"] = 0  # zero is allowed

    # --- Act ---
    task_errors = validate_entities("tasks", tasks)
    worker_errors = validate_entities("workers", workers)

    # --- Assert ---
    assert [(e.row_index, e.field) for e in task_errors] == [(0, "Duration"), (1, "MaxConcurrent")]
    assert [(e.row_index, e.field) for e in worker_errors] == [(0, "MaxLoadPerPhase")]


def test_absent_range_field_is_not_checked(tasks):
    # --- Arrange ---
    second = dict(tasks[1])
    del second["Duration"]

    # --- Act ---
    errors = validate_entities("tasks", [tasks[0], second])

    # --- Assert ---
    assert errors == []


def test_delimited_text_is_malformed_list(workers):
    # --- Arrange ---
    workers[0]["Skills"] = "python,sql"

    # --- Act ---
    errors = validate_entities("workers", workers)

    # --- Assert ---
    assert _types(errors) == [ErrorType.MALFORMED_LIST]
    assert errors[0].field == "Skills"
    assert "is not a list" in errors[0].message


def test_numeric_list_describes_every_offending_element(workers):
    # --- Arrange ---
    workers[1]["AvailableSlots"] = [1, "x", 3, None]

    # --- Act ---
    errors = validate_entities("workers", workers)

    # --- Assert ---
    assert len(errors) == 1
    assert errors[0].row_index == 1
    assert errors[0].message == (
        "AvailableSlots contains non-numeric values: 'x' at position 1, None at position 3"
    )


def test_blank_list_cell_counts_as_absent(tasks):
    # --- Arrange ---
    tasks[0]["PreferredPhases"] = None
    tasks[1]["RequiredSkills"] = ""

    # --- Act / Assert ---
    assert validate_entities("tasks", tasks) == []


def test_skill_sets_are_accepted(workers, tasks):
    # --- Arrange ---
    workers[0]["Skills"] = {"python", "sql"}
    tasks[0]["RequiredSkills"] = frozenset({"python"})

    # --- Act / Assert ---
    assert validate_entities("workers", workers) == []
    assert validate_entities("tasks", tasks) == []


def test_broken_attributes_json(clients):
    # --- Arrange ---
    clients[0]["AttributesJSON"] = '{"location": '
    clients[1]["AttributesJSON"] = {"location": "LA"}  # pre-parsed objects pass

    # --- Act ---
    errors = validate_entities("clients", clients)

    # --- Assert ---
    assert _types(errors) == [ErrorType.BROKEN_JSON]
    assert errors[0].row_index == 0
    assert errors[0].field == "AttributesJSON"


def test_checks_are_additive_and_sorted_by_row(clients):
    """
    @brief
    A row can collect several findings; output is ordered by row index.
    """
    # --- Arrange ---
    clients[1]["PriorityLevel"] = 9
    clients[1]["AttributesJSON"] = "not json"
    clients[0]["RequestedTaskIDs"] = "T1;T2"

    # --- Act ---
    errors = validate_entities("clients", clients)

    # --- Assert ---
    assert [(e.row_index, e.error_type) for e in errors] == [
        (0, ErrorType.MALFORMED_LIST),
        (1, ErrorType.OUT_OF_RANGE),
        (1, ErrorType.BROKEN_JSON),
    ]


def test_typed_entities_are_accepted(clients, workers):
    # --- Arrange ---
    typed_clients = [Client.from_record(r) for r in clients]
    typed_workers = [Worker.from_record({**r, "Shift": "night"}) for r in workers]

    # --- Act / Assert ---
    assert validate_entities("clients", typed_clients) == []
    assert validate_entities("workers", typed_workers) == []


def test_garbage_rows_never_raise():
    """
    @brief
    Totality: rows full of wrong types produce findings, not exceptions.
    """
    # --- Arrange ---
    records = [
        {"TaskID": None, "Duration": [], "RequiredSkills": 5, "PreferredPhases": {"a": 1}, "MaxConcurrent": "x"},
        {"TaskID": ["T"], "Duration": {}, "RequiredSkills": None, "PreferredPhases": [], "MaxConcurrent": None},
        {"TaskID": ["T"]},
        42,
    ]

    # --- Act ---
    errors = validate_entities("tasks", records)

    # --- Assert ---
    assert isinstance(errors, list)
    assert all(e.entity_type == "tasks" for e in errors)
    assert ErrorType.DUPLICATE_ID in _types(errors)


@pytest.mark.parametrize("entity_type", ["projects", "", None])
def test_unknown_entity_type_is_logged_not_raised(entity_type, caplog: pytest.LogCaptureFixture):
    """
    @brief
    An entity type outside clients/workers/tasks yields no findings and
    an ERROR log entry instead of an exception.
    """
    # --- Arrange ---
    caplog.set_level(logging.ERROR)

    # --- Act ---
    errors = validate_entities(entity_type, [{"ClientID": "C1"}])

    # --- Assert ---
    assert errors == []
    assert "unknown entity type" in caplog.text
