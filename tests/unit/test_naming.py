import pytest
from sqlrow.naming import CamelCaseNaming, NamingConvention, camel_case
from sqlrow.naming import get_naming, snake_case, split_qualified, unquote


def test_camel_case():
    """Test underscores and qualifiers become camel case boundaries"""
    assert camel_case('first_name') == 'firstName'
    assert camel_case('person1.first_name') == 'person1FirstName'
    assert camel_case('id') == 'id'


def test_snake_case():
    """Test camel case host names map back to snake case"""
    assert snake_case('firstName') == 'first_name'
    assert snake_case('id') == 'id'


def test_split_qualified_respects_quotes():
    """Test dots inside quoted segments do not split"""
    assert split_qualified('"a.b".c') == ['"a.b"', 'c']
    assert unquote('"say ""hi"""') == 'say "hi"'


def test_camel_naming_keeps_quoted_names():
    """Test quoted identifiers are taken verbatim"""
    naming = CamelCaseNaming()
    assert naming.sql_to_host('"a_field"') == 'a_field'
    assert naming.sql_to_host('"aField"') == 'aField'
    assert naming.sql_to_host('FIRST_NAME') == 'firstName'
    assert naming.sql_to_host('person1.id') == 'person1Id'
    assert naming.host_to_sql('firstName') == 'first_name'


def test_identity_naming():
    """Test identity naming only removes quotes"""
    naming = NamingConvention()
    assert naming.sql_to_host('first_name') == 'first_name'
    assert naming.sql_to_host('"Person"."Id"') == 'Person.Id'


def test_get_naming():
    """Test naming conventions resolve by name"""
    assert isinstance(get_naming('camel'), CamelCaseNaming)
    assert type(get_naming('identity')) is NamingConvention
    naming = CamelCaseNaming()
    assert get_naming(naming) is naming
    with pytest.raises(ValueError):
        get_naming('kebab')
