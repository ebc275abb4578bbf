"""
Tests for database session management utilities.
"""

from unittest.mock import AsyncMock, Mock, patch

import pytest
from sqlalchemy import inspect, select
from sqlalchemy.exc import SQLAlchemyError

from vet_moments.database.session import SessionManager
from vet_moments.exceptions import BusinessRuleException, TransactionException
from vet_moments.models import Owner
from vet_moments.models.base import Base


class TestSessionManager:
    """Test cases for SessionManager class."""

    def test_session_manager_initialization(self):
        """Test SessionManager initialization."""
        mock_engine = Mock()
        manager = SessionManager(mock_engine)

        assert manager.engine == mock_engine
        assert manager.session_factory is not None
        assert manager.is_initialized is False

    @pytest.mark.asyncio
    async def test_create_session(self):
        """Test session creation."""
        manager = SessionManager(Mock())

        with patch.object(manager, "session_factory") as mock_factory:
            mock_session = AsyncMock()
            mock_factory.return_value = mock_session

            session = await manager.create_session()

            assert session == mock_session
            mock_factory.assert_called_once()

    @pytest.mark.asyncio
    async def test_get_session_context_manager(self):
        """Test get_session context manager."""
        manager = SessionManager(Mock())
        mock_session = AsyncMock()

        with patch.object(manager, "create_session", return_value=mock_session):
            async with manager.get_session() as session:
                assert session == mock_session

            mock_session.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_get_session_with_exception(self):
        """Test get_session context manager with exception."""
        manager = SessionManager(Mock())
        mock_session = AsyncMock()

        with patch.object(manager, "create_session", return_value=mock_session):
            with pytest.raises(ValueError):
                async with manager.get_session():
                    raise ValueError("Test error")

            mock_session.rollback.assert_called_once()
            mock_session.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_execute_in_transaction_success(self):
        """Test execute_in_transaction with successful operation."""
        manager = SessionManager(Mock())

        async def double(session, value):
            return value * 2

        with patch.object(manager, "get_transaction") as mock_get_transaction:
            mock_get_transaction.return_value.__aenter__.return_value = AsyncMock()

            assert await manager.execute_in_transaction(double, 5) == 10

    @pytest.mark.asyncio
    async def test_execute_in_transaction_sqlalchemy_error(self):
        """SQLAlchemy errors are wrapped with the operation name."""
        manager = SessionManager(Mock())

        async def failing_operation(session):
            raise SQLAlchemyError("Database error")

        with patch.object(manager, "get_transaction") as mock_get_transaction:
            mock_get_transaction.return_value.__aenter__.return_value = AsyncMock()

            with pytest.raises(TransactionException) as exc_info:
                await manager.execute_in_transaction(failing_operation)

        assert exc_info.value.details["operation"] == "failing_operation"
        assert isinstance(exc_info.value.original_error, SQLAlchemyError)

    @pytest.mark.asyncio
    async def test_execute_in_transaction_general_error(self):
        """Test execute_in_transaction with general error."""
        manager = SessionManager(Mock())

        async def failing_operation(session):
            raise ValueError("General error")

        with patch.object(manager, "get_transaction") as mock_get_transaction:
            mock_get_transaction.return_value.__aenter__.return_value = AsyncMock()

            with pytest.raises(TransactionException, match="Unexpected error"):
                await manager.execute_in_transaction(failing_operation)

    @pytest.mark.asyncio
    async def test_execute_in_transaction_keeps_package_exceptions(self):
        """Package exceptions raised by the operation are not rewrapped."""
        manager = SessionManager(Mock())

        async def rule_violation(session):
            raise BusinessRuleException("Nope", rule_name="test_rule")

        with patch.object(manager, "get_transaction") as mock_get_transaction:
            mock_get_transaction.return_value.__aenter__.return_value = AsyncMock()

            with pytest.raises(BusinessRuleException):
                await manager.execute_in_transaction(rule_violation)

    @pytest.mark.asyncio
    async def test_health_check_success(self):
        """Test successful health check."""
        manager = SessionManager(Mock())
        mock_session = AsyncMock()

        with (
            patch.object(manager, "get_session") as mock_get_session,
            patch.object(manager, "get_transaction") as mock_get_transaction,
        ):
            mock_get_session.return_value.__aenter__.return_value = mock_session
            mock_get_transaction.return_value.__aenter__.return_value = mock_session

            result = await manager.health_check()

        assert result["status"] == "healthy"
        assert result["checks"]["basic_query"]["status"] == "pass"
        assert result["checks"]["transaction"]["status"] == "pass"

    @pytest.mark.asyncio
    async def test_health_check_skipped_when_recent(self):
        """A second check inside the interval is skipped unless forced."""
        manager = SessionManager(Mock())

        with (
            patch.object(manager, "get_session") as mock_get_session,
            patch.object(manager, "get_transaction") as mock_get_transaction,
        ):
            mock_get_session.return_value.__aenter__.return_value = AsyncMock()
            mock_get_transaction.return_value.__aenter__.return_value = AsyncMock()

            await manager.health_check()
            second = await manager.health_check()
            forced = await manager.health_check(force=True)

        assert second["status"] == "skipped"
        assert forced["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_health_check_failure(self):
        """Test health check failure."""
        manager = SessionManager(Mock())

        with patch.object(manager, "get_session") as mock_get_session:
            mock_get_session.side_effect = Exception("Connection failed")

            result = await manager.health_check()

        assert result["status"] == "unhealthy"
        assert result["checks"]["general"]["status"] == "fail"


class TestSessionManagerWithDatabase:
    """SessionManager against a real SQLite database."""

    @pytest.mark.asyncio
    async def test_transaction_commits(self, test_session_manager):
        async with test_session_manager.get_transaction() as session:
            session.add(Owner(full_name="Committed Owner"))

        async with test_session_manager.get_session() as session:
            result = await session.execute(
                select(Owner).where(Owner.full_name == "Committed Owner")
            )
            assert result.scalar_one_or_none() is not None

    @pytest.mark.asyncio
    async def test_transaction_rolls_back_on_error(self, test_session_manager):
        with pytest.raises(RuntimeError):
            async with test_session_manager.get_transaction() as session:
                session.add(Owner(full_name="Rolled Back"))
                await session.flush()
                raise RuntimeError("abort")

        async with test_session_manager.get_session() as session:
            result = await session.execute(
                select(Owner).where(Owner.full_name == "Rolled Back")
            )
            assert result.scalar_one_or_none() is None

    @pytest.mark.asyncio
    async def test_initialize_and_cleanup_database(self, tmp_path):
        from vet_moments.database.connection import create_engine

        engine = create_engine(f"sqlite:///{tmp_path / 'init.db'}", use_null_pool=True)
        manager = SessionManager(engine)

        assert await manager.initialize_database(Base.metadata) is True
        assert manager.is_initialized is True

        async with engine.connect() as conn:
            tables = await conn.run_sync(lambda c: inspect(c).get_table_names())
        assert "pet_posts" in tables
        assert "owner_follows" in tables

        assert await manager.cleanup_database(Base.metadata, drop_all=True) is True
        assert manager.is_initialized is False
