# src/dms_data_client/repositories/auth/pg_repositoryUser.py

import logging
from uuid import UUID
from typing import Optional, List

from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession
from passlib.context import CryptContext

from dms_data_client.db import UserORM
from dms_data_client.db.base import get_session
from dms_data_client.exceptions import DatabaseError, ConflictError
from dms_data_client.models.user import UserCreate

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

def get_password_hash(password: str) -> str:
    """Создает хеш из обычного пароля."""
    return pwd_context.hash(password)


class UserRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create_user(self, data: UserCreate) -> UserORM:
        """Создает пользователя. Дубликат username/email -> ConflictError."""
        user = UserORM(
            username=data.username,
            email=data.email,
            password_hash=get_password_hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            is_active=data.is_active,
            is_manager=data.is_manager,
        )
        async for session in get_session(self._session_factory):
            try:
                session.add(user)
                await session.commit()
                await session.refresh(user)
                logger.info(f"Created user '{user.username}' with id {user.user_id}")
                return user
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(f"User with username '{data.username}' or email '{data.email}' already exists.") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to create user: {e}") from e

    async def get_by_id(self, user_id: UUID) -> Optional[UserORM]:
        """Точечный поиск по первичному ключу. Без кеша: проверка прав всегда идет в БД."""
        async for session in get_session(self._session_factory):
            result = await session.execute(select(UserORM).where(UserORM.user_id == user_id))
            return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[UserORM]:
        async for session in get_session(self._session_factory):
            result = await session.execute(select(UserORM).where(UserORM.email == email))
            return result.scalar_one_or_none()

    async def list_users(self) -> List[UserORM]:
        async for session in get_session(self._session_factory):
            result = await session.execute(select(UserORM).order_by(UserORM.created_at, UserORM.username))
            return list(result.scalars().all())

    async def delete_user(self, user_id: UUID) -> Optional[UserORM]:
        """
        Удаляет пользователя. Его членства и выданные ему права удаляются каскадом,
        а ссылки RESTRICT (менеджер воркспейса, загрузивший файл, выдавший права)
        блокируют удаление -> ConflictError.
        """
        stmt = (
            delete(UserORM)
            .where(UserORM.user_id == user_id)
            .returning(UserORM)
            .execution_options(synchronize_session=False)
        )
        async for session in get_session(self._session_factory):
            try:
                result = await session.execute(stmt)
                deleted = result.scalar_one_or_none()
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(f"User {user_id} is still referenced and cannot be deleted.") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to delete user {user_id}: {e}") from e
            if deleted:
                logger.info(f"Deleted user {user_id}")
            return deleted

    @staticmethod
    async def set_manager_flag(session: AsyncSession, user_id: UUID, is_manager: bool) -> Optional[UserORM]:
        """Меняет is_manager внутри чужой транзакции (каскад по правам делает вызывающий)."""
        stmt = (
            update(UserORM)
            .where(UserORM.user_id == user_id)
            .values(is_manager=is_manager)
            .returning(UserORM)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()
