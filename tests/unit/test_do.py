import pytest

from slxpipe.errors import ExternalToolError
from slxpipe.provenance import do


def test_run_returns_output():
    assert do.run(["echo", "hello"]) == "hello\n"


def test_run_failure_carries_exit_status_and_output():
    with pytest.raises(ExternalToolError) as excinfo:
        do.run("echo 'bad barcode' && exit 3", "failing tool")
    assert excinfo.value.returncode == 3
    assert "bad barcode" in excinfo.value.output


def test_pipes_fail_on_any_error():
    with pytest.raises(ExternalToolError):
        do.run("false | cat")


def test_output_checks(tmpdir):
    out_file = str(tmpdir.join("out.txt"))
    with pytest.raises(ExternalToolError):
        do.run(["true"], checks=[do.file_nonempty(out_file)])
    do.run("echo x > %s" % out_file, checks=[do.file_nonempty(out_file)])


def test_missing_program():
    with pytest.raises(ExternalToolError):
        do.run(["/nonexistent/configureBclToFastq.pl"])
