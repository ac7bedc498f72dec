"""
Database drivers.

`open_database` maps a driver identifier onto a pooled Database handle sized
for the run's worker count.
"""

from slammer.connectors.base import Database, ThreadedConnectionPool
from slammer.exceptions import DriverError
from slammer.models import RunConfig

DRIVER_ALIASES = {
    "mysql": "mysql",
    "postgres": "postgres",
    "postgresql": "postgres",
    "pg": "postgres",
    "snowflake": "snowflake",
}


def open_database(config: RunConfig) -> Database:
    """
    Build the Database handle for `config.driver`.

    Driver modules are imported on demand so an unused driver's client
    library is never loaded.

    Raises:
        DriverError: unknown driver or a connection string it cannot parse.
    """
    driver = DRIVER_ALIASES.get(config.driver)
    if driver == "postgres":
        from slammer.connectors.postgres_pool import PostgresConnectionPool

        return PostgresConnectionPool(config.connection_string, max_size=config.workers)
    if driver == "mysql":
        from slammer.connectors.mysql_pool import MySQLConnectionPool

        return MySQLConnectionPool(config.connection_string, max_size=config.workers)
    if driver == "snowflake":
        from slammer.connectors.snowflake_pool import SnowflakeConnectionPool

        return SnowflakeConnectionPool(config.connection_string, max_size=config.workers)
    supported = ", ".join(sorted(set(DRIVER_ALIASES.values())))
    raise DriverError(f"Unsupported database driver {config.driver!r} (supported: {supported})")


__all__ = ["Database", "DriverError", "ThreadedConnectionPool", "open_database", "DRIVER_ALIASES"]
