"""Shared fixtures: sample summary documents and slot stores."""

from __future__ import annotations

import copy

import pytest

from custom_components.oilfox.store import MemorySlotStore

# Shape of GET /v2/user/summary
SUMMARY_V2 = {
    "country": "DE",
    "email": "owner@example.com",
    "devices": [
        {
            "id": "OF-1",
            "name": "Cellar",
            "volume": 3000,
            "metering": {"liters": 1250.5, "fillingPercentage": 41, "valid": True},
        },
        {
            "id": "OF-2",
            "name": "Garage",
            "volume": 1500,
            "metering": {"liters": 900, "fillingPercentage": 60, "valid": True},
        },
    ],
}

# Shape of GET /customer-api/v1/device
SUMMARY_V3 = {
    "items": [
        {
            "hwid": "AA:BB:CC",
            "id": "OF-3",
            "fillLevelPercent": 72,
            "fillLevelQuantity": 2160,
            "quantityUnit": "L",
            "validMetering": True,
        }
    ],
    "cursor": None,
}


@pytest.fixture
def summary_v2() -> dict:
    return copy.deepcopy(SUMMARY_V2)


@pytest.fixture
def summary_v3() -> dict:
    return copy.deepcopy(SUMMARY_V3)


@pytest.fixture
def store() -> MemorySlotStore:
    return MemorySlotStore()
