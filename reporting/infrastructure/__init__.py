"""Infrastructure layer exports."""

from .data_api import DataAPI, InMemoryDataAPI, configure_data_api, get_data_api, reset_data_api
from .postgrest import PostgrestDataAPI

__all__ = [
    "DataAPI",
    "InMemoryDataAPI",
    "PostgrestDataAPI",
    "configure_data_api",
    "get_data_api",
    "reset_data_api",
]
