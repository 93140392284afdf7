"""共通エラーハンドリングユーティリティ

ゲートウェイなど外部とやり取りする処理で発生した想定外の例外をログに記録し、
呼び出し側が扱える ``CalendarError`` 系の例外へ変換します。
"""

import asyncio
import functools
from collections.abc import Callable
from typing import Any, TypeVar

from carecal.calendar.errors import CalendarError, GatewayError, WriteFailed
from carecal.utils.logger import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class ErrorHandler:
    """共通エラーハンドリング機能を提供するクラス"""

    @staticmethod
    def log_and_translate(
        operation_name: str,
        exception: Exception,
        into: type[GatewayError],
        **kwargs: Any,
    ) -> GatewayError:
        """エラーをログ記録し、変換後の例外を返す"""
        logger.error(
            f"Failed to {operation_name}",
            error=str(exception),
            error_type=type(exception).__name__,
            **kwargs,
        )
        return into(f"Failed to {operation_name}: {exception}", operation=operation_name)


def translate_errors(
    operation_name: str,
    into: type[GatewayError] = WriteFailed,
    **log_kwargs: Any,
) -> Callable[[F], F]:
    """
    想定外の例外を ``into`` に変換するデコレータ

    ``CalendarError`` はそのまま再送出します。

    Args:
        operation_name: 操作の名前（ログ記録用）
        into: 変換先の例外クラス（デフォルト: WriteFailed）
        **log_kwargs: ログに追加する情報
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except CalendarError:
                raise
            except Exception as e:
                raise ErrorHandler.log_and_translate(
                    operation_name, e, into, **log_kwargs
                ) from e

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except CalendarError:
                raise
            except Exception as e:
                raise ErrorHandler.log_and_translate(
                    operation_name, e, into, **log_kwargs
                ) from e

        # 関数が async かどうかを判定
        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore[return-value]
        return wrapper  # type: ignore[return-value]

    return decorator
