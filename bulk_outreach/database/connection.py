"""
Database Connection Configuration

Handles connection setup, session management, and configuration. The manager is
created by the application entry point and passed to the job store; there is no
module-level instance.
"""

import os
from typing import Optional, Generator
from sqlalchemy import create_engine, Engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool
from sqlalchemy.exc import SQLAlchemyError
from contextlib import contextmanager
import logging

from .models import Base

# Configure logging
logger = logging.getLogger(__name__)


class DatabaseConfig:
    """Database configuration management"""

    def __init__(self, url: Optional[str] = None):
        # Full URL wins over the individual parameters (used for SQLite)
        self.url = url or os.getenv("DATABASE_URL")

        # Database connection parameters from environment
        self.host = os.getenv("DB_HOST", "localhost")
        self.port = int(os.getenv("DB_PORT", "5432"))
        self.database = os.getenv("DB_NAME", "bulk_outreach")
        self.username = os.getenv("DB_USER", "outreach_user")
        self.password = os.getenv("DB_PASSWORD", "")

        # Connection pool settings
        self.pool_size = int(os.getenv("DB_POOL_SIZE", "10"))
        self.max_overflow = int(os.getenv("DB_MAX_OVERFLOW", "20"))
        self.pool_timeout = int(os.getenv("DB_POOL_TIMEOUT", "30"))
        self.pool_recycle = int(os.getenv("DB_POOL_RECYCLE", "3600"))

        # Connection options
        self.echo = os.getenv("DB_ECHO", "false").lower() == "true"
        self.echo_pool = os.getenv("DB_ECHO_POOL", "false").lower() == "true"

    @property
    def database_url(self) -> str:
        """Build connection URL"""
        if self.url:
            return self.url
        return f"postgresql://{self.username}:{self.password}@{self.host}:{self.port}/{self.database}"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def validate_config(self) -> tuple[bool, Optional[str]]:
        """Validate database configuration"""
        if self.url:
            return True, None
        if not self.host:
            return False, "DB_HOST is required"
        if not self.database:
            return False, "DB_NAME is required"
        if not self.username:
            return False, "DB_USER is required"
        if not self.password:
            return False, "DB_PASSWORD is required"

        return True, None


class DatabaseManager:
    """Database connection and session management"""

    def __init__(self, config: Optional[DatabaseConfig] = None):
        self.config = config or DatabaseConfig()
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        """Get or create database engine"""
        if self._engine is None:
            if self.config.is_sqlite:
                self._engine = create_engine(
                    self.config.database_url,
                    connect_args={"check_same_thread": False},
                    echo=self.config.echo,
                    future=True
                )
            else:
                self._engine = create_engine(
                    self.config.database_url,
                    poolclass=QueuePool,
                    pool_size=self.config.pool_size,
                    max_overflow=self.config.max_overflow,
                    pool_timeout=self.config.pool_timeout,
                    pool_recycle=self.config.pool_recycle,
                    echo=self.config.echo,
                    echo_pool=self.config.echo_pool,
                    future=True
                )
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        """Get or create session factory"""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autocommit=False,
                autoflush=False,
                expire_on_commit=False
            )
        return self._session_factory

    def get_session(self) -> Session:
        """Create a new database session"""
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around database operations"""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def test_connection(self) -> tuple[bool, Optional[str]]:
        """Test database connection"""
        try:
            with self.session_scope() as session:
                session.execute(text("SELECT 1"))
            return True, None
        except SQLAlchemyError as e:
            return False, str(e)

    def create_tables(self, drop_first: bool = False) -> bool:
        """Create database tables"""
        try:
            if drop_first:
                Base.metadata.drop_all(bind=self.engine)
                logger.warning("Dropped all existing tables")

            Base.metadata.create_all(bind=self.engine)
            logger.info("Successfully created database tables")
            return True
        except SQLAlchemyError as e:
            logger.error(f"Failed to create tables: {e}")
            return False

    def get_table_names(self) -> list[str]:
        return sorted(Base.metadata.tables.keys())

    def close(self):
        """Close database connections"""
        if self._engine:
            self._engine.dispose()
            self._engine = None
        self._session_factory = None
        logger.info("Database connections closed")


def init_database(db_manager: DatabaseManager, drop_first: bool = False) -> tuple[bool, Optional[str]]:
    """Validate configuration, check connectivity and create tables"""
    is_valid, error_msg = db_manager.config.validate_config()
    if not is_valid:
        return False, f"Configuration error: {error_msg}"

    connection_ok, connection_error = db_manager.test_connection()
    if not connection_ok:
        return False, f"Connection error: {connection_error}"

    if not db_manager.create_tables(drop_first=drop_first):
        return False, "Failed to create database tables"

    return True, "Database initialized successfully"
