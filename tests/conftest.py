"""
Pytest configuration and shared fixtures for schema-sync tests.

This module provides shared fixtures and utilities for testing all schema-sync components.
"""

import copy
import logging
from typing import Any, Callable, Dict, List, Optional

import pytest
import yaml

from schema_sync.config import ParseServerConfig, SchemaSyncConfig
from schema_sync.schema.models import CollectionDefinition, Schema


PARSE_URL = "http://parse.test/parse"

SYSTEM_FIELDS = {
    "objectId": {"type": "String"},
    "createdAt": {"type": "Date"},
    "updatedAt": {"type": "Date"},
    "ACL": {"type": "ACL"},
}

EMPTY_PERMISSIONS = {
    "find": {},
    "get": {},
    "create": {},
    "update": {},
    "delete": {},
    "addField": {},
}


# ============================================================================
# Schema Fixtures
# ============================================================================

@pytest.fixture
def make_collection() -> Callable[..., CollectionDefinition]:
    """Factory for collections carrying the Parse system fields."""
    def factory(
        class_name: str,
        fields: Optional[Dict[str, Any]] = None,
        indexes: Optional[Dict[str, Any]] = None,
        permissions: Optional[Dict[str, Any]] = None,
    ) -> CollectionDefinition:
        all_fields = copy.deepcopy(SYSTEM_FIELDS)
        all_fields.update(fields or {})
        return CollectionDefinition(
            class_name=class_name,
            fields=all_fields,
            indexes=indexes or {},
            class_level_permissions=copy.deepcopy(
                EMPTY_PERMISSIONS if permissions is None else permissions
            ),
        )
    return factory


@pytest.fixture
def sample_schema_dict() -> Dict[str, Any]:
    """Desired schema in schema-file format."""
    return {
        "collections": [
            {
                "className": "Foo",
                "fields": {
                    **copy.deepcopy(SYSTEM_FIELDS),
                    "AAA": {"type": "String"},
                    "AAB": {"type": "String"},
                },
                "indexes": {
                    "AAA_index": {"AAA": 1},
                    "AAB_index": {"AAB": 1},
                },
                "classLevelPermissions": {
                    **copy.deepcopy(EMPTY_PERMISSIONS),
                    "find": {"role:user": True},
                },
            },
            {
                "className": "Bar",
                "fields": {
                    **copy.deepcopy(SYSTEM_FIELDS),
                    "BAA": {"type": "String"},
                    "BAB": {"type": "String"},
                },
                "classLevelPermissions": copy.deepcopy(EMPTY_PERMISSIONS),
            },
        ],
        "functions": [
            {"functionName": "getFoobar", "url": "/getFoobar"},
            {"functionName": "addFoobar", "url": "/addFoobar"},
        ],
        "triggers": [
            {"className": "Foo", "triggerName": "beforeSave", "url": "/foo/beforeSave"},
            {"className": "Bar", "triggerName": "afterSave", "url": "/bar/afterSave"},
        ],
    }


@pytest.fixture
def sample_schema(sample_schema_dict) -> Schema:
    """Desired schema as model objects."""
    return Schema.from_dict(sample_schema_dict)


@pytest.fixture
def empty_schema() -> Schema:
    return Schema()


@pytest.fixture
def schema_file(tmp_path, sample_schema_dict) -> str:
    """Desired schema written to a YAML file."""
    path = tmp_path / "schema.yaml"
    path.write_text(yaml.safe_dump(sample_schema_dict), encoding="utf-8")
    return str(path)


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def parse_config() -> ParseServerConfig:
    """Parse Server configuration for testing."""
    return ParseServerConfig(
        url=PARSE_URL,
        application_id="test-app",
        master_key="test-master-key",
        timeout=5,
        max_retries=0,
        retry_delay=0.01,
    )


@pytest.fixture
def sample_config_dict() -> Dict[str, Any]:
    return {
        "server": {
            "url": PARSE_URL,
            "application_id": "test-app",
            "master_key": "test-master-key",
            "max_retries": 0,
        },
        "options": {"hook_url": "https://hooks.test"},
    }


@pytest.fixture
def config_file(tmp_path, sample_config_dict) -> str:
    """Configuration written to a YAML file."""
    path = tmp_path / "schema-sync.yaml"
    path.write_text(yaml.safe_dump(sample_config_dict), encoding="utf-8")
    return str(path)


@pytest.fixture
def sample_config(sample_config_dict) -> SchemaSyncConfig:
    return SchemaSyncConfig(**sample_config_dict)


# ============================================================================
# Mock API Fixtures
# ============================================================================

@pytest.fixture
def parse_schemas_response(sample_schema_dict) -> Dict[str, Any]:
    """Parse Server GET /schemas response matching the sample schema."""
    results = copy.deepcopy(sample_schema_dict["collections"])
    for collection in results:
        # Parse always reports the _id_ index and the v3 default permissions
        collection.setdefault("indexes", {})["_id_"] = {"_id": 1}
        collection["classLevelPermissions"]["count"] = {}
        collection["classLevelPermissions"]["protectedFields"] = {"*": []}
    return {"results": results}


def recorded_requests(mocked, method: str, url: str) -> List[Dict[str, Any]]:
    """Keyword arguments of every request aioresponses saw for method + url."""
    return [
        call.kwargs
        for (m, u), calls in mocked.requests.items()
        if m == method and str(u) == url
        for call in calls
    ]


@pytest.fixture
def requests_to():
    """Lookup of recorded aioresponses requests, see ``recorded_requests``."""
    return recorded_requests


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo CLI logging configuration so caplog keeps working."""
    yield
    logger = logging.getLogger("schema_sync")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
