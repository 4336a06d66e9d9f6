#
#  Copyright (C) 2017-2025 Dremio Corporation
#
#  Licensed under the Apache License, Version 2.0 (the "License");
#  you may not use this file except in compliance with the License.
#  You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
#  Unless required by applicable law or agreed to in writing, software
#  distributed under the License is distributed on an "AS IS" BASIS,
#  WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#  See the License for the specific language governing permissions and
#  limitations under the License.
#

"""
Global pytest fixtures for querycanvas tests.
"""
import os

import pytest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import AsyncMock, MagicMock, patch

from querycanvas.builder.ids import IdGenerator
from querycanvas.builder.models import ColumnInfo, TableSchema
from querycanvas.builder.notify import Notifier
from querycanvas.config import settings


@pytest.fixture
def temp_config_dir():
    """Create a temporary directory for config files"""
    with TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def mock_config_dir(temp_config_dir):
    """Mock the home directory to use our temporary directory"""
    with patch.object(Path, "home", return_value=temp_config_dir):
        # Also patch XDG_CONFIG_HOME environment variable
        old_env = os.environ.get("XDG_CONFIG_HOME")
        os.environ["XDG_CONFIG_HOME"] = str(temp_config_dir)
        yield temp_config_dir
        # Restore original environment
        if old_env:
            os.environ["XDG_CONFIG_HOME"] = old_env
        else:
            os.environ.pop("XDG_CONFIG_HOME", None)


@pytest.fixture
def mock_settings_instance():
    """Create a settings instance pointing at a test API"""
    old_settings = settings._settings.get()
    try:
        settings._settings.set(
            settings.Settings.model_validate(
                {
                    "api": {
                        "uri": "https://bi.example.com/",
                        "token": "test-token",
                        "workspace_id": "ws-1",
                    },
                    "export": {"poll_interval": 0, "max_attempts": 5},
                }
            )
        )
        yield settings.instance()
    finally:
        settings._settings.set(old_settings)


@pytest.fixture
def client():
    """An http client whose verbs are async mocks"""
    c = MagicMock()
    c.get = AsyncMock(return_value=None)
    c.post = AsyncMock(return_value=None)
    c.put = AsyncMock(return_value=None)
    c.delete = AsyncMock(return_value=None)
    return c


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def ids():
    return IdGenerator()


@pytest.fixture
def schemas():
    return [
        TableSchema(
            name="customers",
            schema="sales",
            columns=(
                ColumnInfo(name="id", type="INTEGER", is_primary_key=True),
                ColumnInfo(name="email", type="VARCHAR"),
            ),
            row_count=120,
        ),
        TableSchema(
            name="orders",
            schema="sales",
            columns=(
                ColumnInfo(name="id", type="INTEGER", is_primary_key=True),
                ColumnInfo(name="customer_id", type="INTEGER", is_foreign_key=True),
                ColumnInfo(name="total", type="DECIMAL"),
            ),
        ),
        TableSchema(
            name="products",
            columns=(ColumnInfo(name="sku", type="VARCHAR", is_primary_key=True),),
        ),
        TableSchema(name="regions", columns=(ColumnInfo(name="code", type="VARCHAR"),)),
    ]

