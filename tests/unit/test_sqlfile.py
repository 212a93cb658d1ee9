import pytest
from sqlrow.exceptions import IllegalStateError, MalformedStatementError
from sqlrow.exceptions import UnknownStatementError
from sqlrow.sqlfile import SqlFile, split_statements

SQL_TEXT = """
Preamble text is ignored.

-- loadAllPersons
SELECT id /*:int*/, first_name /*:string*/
FROM person;

-- loadPersonById
SELECT id /*:int*/, first_name /*:string*/
FROM person
WHERE id = /*=*/ 1 /**/;
"""


def test_split_statements():
    """Test named blocks are split at header comments"""
    blocks = split_statements(SQL_TEXT)
    assert list(blocks) == ['loadAllPersons', 'loadPersonById']
    assert blocks['loadAllPersons'].strip().endswith('FROM person;')


def test_missing_terminator():
    """Test a block without ';' names the statement in the error"""
    text = '-- broken\nSELECT 1\n-- next\nSELECT 2;\n'
    with pytest.raises(MalformedStatementError, match="'broken'. Did you add ';'"):
        split_statements(text)

    with pytest.raises(MalformedStatementError, match='last'):
        split_statements('-- last\nSELECT 1\n')


def test_duplicate_names():
    """Test a statement name may be used once per file"""
    with pytest.raises(MalformedStatementError, match='Duplicate'):
        split_statements('-- a\nSELECT 1;\n-- a\nSELECT 2;\n')


def test_sql_file_templates():
    """Test every block is parsed into a template"""
    sql_file = SqlFile(SQL_TEXT, 'people.sql')
    assert len(sql_file) == 2
    assert 'loadPersonById' in sql_file
    template = sql_file.template('loadPersonById')
    assert [p.name for p in template.parameters] == ['id']
    assert [c.key for c in template.result_columns] == ['id', 'first_name']


def test_unknown_statement():
    """Test looking up a missing name"""
    sql_file = SqlFile(SQL_TEXT, 'people.sql')
    with pytest.raises(UnknownStatementError):
        sql_file.template('deleteEverything')


def test_unbound_statement():
    """Test statements need a database to run on"""
    sql_file = SqlFile(SQL_TEXT, 'people.sql')
    with pytest.raises(IllegalStateError):
        sql_file.statement('loadAllPersons')


def test_from_path(tmp_path):
    """Test loading a file from disk"""
    path = tmp_path / 'people.sql'
    path.write_text(SQL_TEXT, encoding='utf-8')
    sql_file = SqlFile.from_path(path)
    assert sql_file.names() == ['loadAllPersons', 'loadPersonById']
    assert sql_file.name == str(path)
