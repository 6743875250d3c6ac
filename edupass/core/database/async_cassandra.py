"""Async Cassandra connection using cassandra-asyncio-driver.

The session exposes ``aexecute()`` for non-blocking queries. Schema
bootstrap creates the keyspace and every table declared by the feature
modules' ``*_TABLES_CQL`` lists.
"""

from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from edupass.catalog.models import CATALOG_TABLES_CQL
from edupass.codes.models import CODES_TABLES_CQL
from edupass.config.settings import get_settings
from edupass.core.logging import get_logger
from edupass.courses.models import COURSES_TABLES_CQL
from edupass.favorites.models import FAVORITES_TABLES_CQL
from edupass.questions.models import QUESTIONS_TABLES_CQL
from edupass.students.models import STUDENTS_TABLES_CQL


logger = get_logger(__name__)

# (name, statements) in creation order
SCHEMA: list[tuple[str, list[str]]] = [
    ("catalog", CATALOG_TABLES_CQL),
    ("questions", QUESTIONS_TABLES_CQL),
    ("courses", COURSES_TABLES_CQL),
    ("codes", CODES_TABLES_CQL),
    ("students", STUDENTS_TABLES_CQL),
    ("favorites", FAVORITES_TABLES_CQL),
]


class AsyncCassandraConnection:
    """Process-wide cluster and session holder."""

    _cluster: Cluster | None = None
    _session = None

    @classmethod
    def connect(cls):
        """Connect to the cluster (synchronous) and return the session.

        Raises:
            ConnectionError: If the cluster is unreachable.
        """
        if cls._session is not None:
            return cls._session

        settings = get_settings()

        auth_provider = None
        if settings.cassandra_username and settings.cassandra_password:
            auth_provider = PlainTextAuthProvider(
                username=settings.cassandra_username,
                password=settings.cassandra_password,
            )

        cls._cluster = Cluster(
            contact_points=settings.cassandra_hosts,
            port=settings.cassandra_port,
            auth_provider=auth_provider,
            protocol_version=settings.cassandra_protocol_version,
            load_balancing_policy=TokenAwarePolicy(DCAwareRoundRobinPolicy()),
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            cls._session = cls._cluster.connect()
        except Exception as e:
            logger.error("cassandra_connection_failed", error=str(e))
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        logger.info(
            "cassandra_connected",
            hosts=settings.cassandra_hosts,
            port=settings.cassandra_port,
        )
        return cls._session

    @classmethod
    def get_session(cls):
        if cls._session is None:
            return cls.connect()
        return cls._session

    @classmethod
    def disconnect(cls) -> None:
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
            logger.info("cassandra_disconnected")


async def init_keyspace(session, keyspace: str) -> None:
    """Create the keyspace if it does not exist."""
    settings = get_settings()

    if settings.is_production:
        replication = "'class': 'NetworkTopologyStrategy', 'datacenter1': 3"
    else:
        replication = "'class': 'SimpleStrategy', 'replication_factor': 1"

    await session.aexecute(
        f"CREATE KEYSPACE IF NOT EXISTS {keyspace} "
        f"WITH replication = {{{replication}}} AND durable_writes = true"
    )
    logger.info("keyspace_ready", keyspace=keyspace)


async def init_tables(session, keyspace: str) -> None:
    """Create every table and index of the application schema."""
    for name, statements in SCHEMA:
        for cql_template in statements:
            await session.aexecute(cql_template.format(keyspace=keyspace))
        logger.info("tables_ready", module=name, keyspace=keyspace)


async def init_async_cassandra():
    """Connect, bootstrap the schema and return the session."""
    settings = get_settings()

    session = AsyncCassandraConnection.connect()
    await init_keyspace(session, settings.cassandra_keyspace)
    session.set_keyspace(settings.cassandra_keyspace)
    await init_tables(session, settings.cassandra_keyspace)

    logger.info("cassandra_initialized", keyspace=settings.cassandra_keyspace)
    return session


async def shutdown_async_cassandra() -> None:
    AsyncCassandraConnection.disconnect()
