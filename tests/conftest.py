import sys
from pathlib import Path

import pytest

# (1) Add repository root and src/ to sys.path to enable absolute imports
#     The root directory contains scripts/, src/ and config/.
ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


def _clients():
    return [
        {
            "ClientID": "C1",
            "ClientName": "Acme Corp",
            "PriorityLevel": 3,
            "RequestedTaskIDs": ["T1"],
            "GroupTag": "GroupA",
            "AttributesJSON": '{"location": "NY", "budget": 100}',
        },
        {
            "ClientID": "C2",
            "ClientName": "Globex",
            "PriorityLevel": 5,
            "RequestedTaskIDs": ["T1", "T2"],
            "GroupTag": "GroupB",
            "AttributesJSON": '{"location": "LA"}',
        },
    ]


def _workers():
    return [
        {
            "WorkerID": "W1",
            "Skills": ["python", "sql"],
            "AvailableSlots": [1, 2, 3],
            "MaxLoadPerPhase": 2,
            "WorkerGroup": "GroupA",
            "QualificationLevel": 4,
        },
        {
            "WorkerID": "W2",
            "Skills": ["design"],
            "AvailableSlots": [2, 4],
            "MaxLoadPerPhase": 1,
            "WorkerGroup": "GroupB",
            "QualificationLevel": 2,
        },
    ]


def _tasks():
    return [
        {
            "TaskID": "T1",
            "Duration": 2,
            "RequiredSkills": ["python"],
            "PreferredPhases": [1, 2],
            "MaxConcurrent": 2,
        },
        {
            "TaskID": "T2",
            "Duration": 1,
            "RequiredSkills": ["design", "sql"],
            "PreferredPhases": [3],
            "MaxConcurrent": 1,
        },
    ]


@pytest.fixture()
def clients():
    """Two structurally valid client rows."""
    return _clients()


@pytest.fixture()
def workers():
    """Two structurally valid worker rows covering every task skill."""
    return _workers()


@pytest.fixture()
def tasks():
    """Two structurally valid task rows (T1, T2)."""
    return _tasks()


@pytest.fixture()
def bundle_dict():
    """Clean workspace bundle in the export layout."""
    return {
        "clients": _clients(),
        "workers": _workers(),
        "tasks": _tasks(),
        "rules": [
            {
                "id": "r1",
                "type": "phaseWindow",
                "description": "T1 early",
                "parameters": {"taskId": "T1", "allowedPhases": [1, 2]},
                "priority": 5,
            }
        ],
        "prioritySettings": {
            "weights": {
                "clientPriority": 8,
                "workerUtilization": 4,
                "taskCompletion": 7,
                "fairnessScore": 2,
            },
            "rankings": ["clientPriority", "taskCompletion", "workerUtilization", "fairnessScore"],
            "selectedPreset": "maxFulfillment",
        },
    }
