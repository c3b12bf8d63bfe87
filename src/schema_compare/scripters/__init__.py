"""DDL scripters for PostgreSQL, MySQL and Microsoft SQL Server.

Usage:
    >>> from schema_compare.scripters import create_scripter, DatabaseScripter
"""

from schema_compare.scripters.base import DatabaseScripter, ScriptHelper
from schema_compare.scripters.factory import create_scripter
from schema_compare.scripters.mssql import MicrosoftSqlScripter
from schema_compare.scripters.mysql import MySqlScripter
from schema_compare.scripters.postgres import PostgreSqlScripter

__all__ = [
    "create_scripter",
    "DatabaseScripter",
    "ScriptHelper",
    "MicrosoftSqlScripter",
    "MySqlScripter",
    "PostgreSqlScripter",
]
