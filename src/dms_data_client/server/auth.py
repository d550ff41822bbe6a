# Файл: dms_data_client/server/auth.py
"""
Откуда сервер берет личность вызывающего.

Аутентификации в системе нет: идентификатор пользователя приходит в пути, query
или теле запроса и принимается как есть. Проверка вынесена в подменяемую
зависимость, чтобы внешний слой мог подставить свою (токены, сессии) без
изменений в ядре.
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request

from dms_data_client import DataClient


class IdentityResolver:
    """По умолчанию доверяет заявленному идентификатору."""

    async def resolve(self, asserted_user_id: UUID, request: Request) -> UUID:
        return asserted_user_id


_default_resolver = IdentityResolver()


def get_identity_resolver() -> IdentityResolver:
    # Переопределяется через app.dependency_overrides
    return _default_resolver


def get_data_client(request: Request) -> DataClient:
    return request.app.state.data_client


ClientDep = Annotated[DataClient, Depends(get_data_client)]
ResolverDep = Annotated[IdentityResolver, Depends(get_identity_resolver)]
