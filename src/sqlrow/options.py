from dataclasses import dataclass, fields
from typing import Any, Self

from sqlrow.naming import get_naming
from sqlrow.strategy import strategy_class

__all__ = ['DatabaseOptions']


@dataclass
class DatabaseOptions:
    """Options

    supported driver names: `postgresql`, `sqlite`

    - naming: host naming convention for statement display names,
      `camel` (default) or `identity`
    - autocommit: whether every statement commits immediately (default: True)
    - statement_cache_size: number of parsed inline statements kept (default: 128)
    """
    drivername: str = 'postgresql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    naming: str = 'camel'
    autocommit: bool = True
    statement_cache_size: int = 128

    def __post_init__(self):
        strategy = strategy_class(self.drivername)
        get_naming(self.naming)
        if self.statement_cache_size < 1:
            raise ValueError('statement_cache_size must be positive')
        strategy.validate_options(self)

    @classmethod
    def from_config(cls, config: dict[str, Any] | None = None, **kw: Any) -> Self:
        """Build options from a mapping, keyword arguments overriding it.

        Unknown keys raise TypeError.
        """
        values = dict(config or {})
        values.update(kw)
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise TypeError(f'Unknown database options: {sorted(unknown)}')
        return cls(**values)
