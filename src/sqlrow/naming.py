"""
Identifier naming conventions.

SQL identifiers (snake_case, possibly schema- or table-qualified) are the
canonical keys for statement rows. A naming convention derives the host
display name from them; quoted identifiers are never rewritten.
"""
import re

_SEPARATORS = re.compile(r'[._\s]+')
_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])(?=[A-Z])')


def is_quoted(identifier: str) -> bool:
    return len(identifier) >= 2 and identifier[0] == identifier[-1] == '"'


def unquote(identifier: str) -> str:
    """Strip surrounding double quotes and undo doubled quotes.
    """
    if is_quoted(identifier):
        return identifier[1:-1].replace('""', '"')
    return identifier


def split_qualified(identifier: str) -> list[str]:
    """Split a dotted identifier while respecting quoted segments.
    """
    parts, current, in_quotes = [], [], False
    for char in identifier:
        if char == '"':
            in_quotes = not in_quotes
            current.append(char)
        elif char == '.' and not in_quotes:
            parts.append(''.join(current))
            current = []
        else:
            current.append(char)
    parts.append(''.join(current))
    return parts


def camel_case(identifier: str) -> str:
    """``person1.first_name`` -> ``person1FirstName``.
    """
    words = [w for w in _SEPARATORS.split(identifier) if w]
    if not words:
        return identifier
    head, *tail = words
    return head[0].lower() + head[1:] + ''.join(w[0].upper() + w[1:] for w in tail)


def snake_case(identifier: str) -> str:
    """``firstName`` -> ``first_name``.
    """
    return _CAMEL_BOUNDARY.sub('_', identifier).lower()


class NamingConvention:
    """Identity naming: host names equal SQL names (minus quotes).
    """

    name = 'identity'

    def sql_to_host(self, identifier: str) -> str:
        return '.'.join(unquote(p) for p in split_qualified(identifier))

    def host_to_sql(self, identifier: str) -> str:
        return identifier


class CamelCaseNaming(NamingConvention):
    """snake_case SQL identifiers become camelCase host names.

    Quoted segments are kept verbatim; a name that is quoted as a whole is
    returned without any conversion.
    """

    name = 'camel'

    def sql_to_host(self, identifier: str) -> str:
        parts = split_qualified(identifier)
        if len(parts) == 1 and is_quoted(parts[0]):
            return unquote(parts[0])
        if any(is_quoted(p) for p in parts):
            words = [unquote(p) if is_quoted(p) else camel_case(p.lower()) for p in parts]
            return words[0] + ''.join(w[:1].upper() + w[1:] for w in words[1:])
        return camel_case(identifier.lower() if identifier.isupper() else identifier)

    def host_to_sql(self, identifier: str) -> str:
        return snake_case(identifier)


_CONVENTIONS: dict[str, type[NamingConvention]] = {
    NamingConvention.name: NamingConvention,
    CamelCaseNaming.name: CamelCaseNaming,
}


def get_naming(name: str | NamingConvention) -> NamingConvention:
    """Resolve a naming convention by name (``camel`` or ``identity``).
    """
    if isinstance(name, NamingConvention):
        return name
    try:
        return _CONVENTIONS[name]()
    except KeyError:
        raise ValueError(f'Unknown naming convention: {name}. Available: {list(_CONVENTIONS)}') from None
