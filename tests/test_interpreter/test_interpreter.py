"""Tests for the interpreter."""

import asyncio
import os
import sys
import time

import pytest
from taskshell import CancellationToken, Shell

PY = sys.executable

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="needs POSIX utilities")


def py(code: str) -> str:
    """Shell source running a Python one-liner (code must not contain single quotes)."""
    return f"'{PY}' -c '{code}'"


class TestBasicExecution:
    """Test basic script execution."""

    @pytest.mark.asyncio
    async def test_simple_echo(self):
        shell = Shell()
        result = await shell.exec("echo hello")
        assert result.stdout == "hello\n"
        assert result.exit_code == 0

    @pytest.mark.asyncio
    async def test_echo_multiple_args(self):
        shell = Shell()
        result = await shell.exec("echo hello   world")
        assert result.stdout == "hello world\n"

    @pytest.mark.asyncio
    async def test_sequential_statements(self):
        shell = Shell()
        result = await shell.exec("echo a; echo b\necho c")
        assert result.stdout == "a\nb\nc\n"

    @pytest.mark.asyncio
    async def test_true_false(self):
        shell = Shell()
        assert (await shell.exec("true")).exit_code == 0
        assert (await shell.exec("false")).exit_code == 1
        assert (await shell.exec(":")).exit_code == 0

    @pytest.mark.asyncio
    async def test_empty_script(self):
        shell = Shell()
        result = await shell.exec("")
        assert result.exit_code == 0
        assert result.stdout == ""

    @pytest.mark.asyncio
    async def test_command_not_found(self):
        shell = Shell()
        result = await shell.exec("nonexistent_command_xyz arg")
        assert result.stderr == "taskshell: nonexistent_command_xyz: command not found\n"
        assert result.exit_code == 127

    @pytest.mark.asyncio
    async def test_not_found_does_not_abort_script(self):
        shell = Shell()
        result = await shell.exec("nonexistent_command_xyz; echo $?")
        assert result.stdout == "127\n"
        assert result.exit_code == 0

    @pytest.mark.asyncio
    async def test_external_command(self):
        shell = Shell()
        result = await shell.exec(py("print(42)"))
        assert result.stdout.strip() == "42"

    @pytest.mark.asyncio
    async def test_external_exit_code(self):
        shell = Shell()
        result = await shell.exec(py("import sys; sys.exit(7)"))
        assert result.exit_code == 7

    @posix_only
    @pytest.mark.asyncio
    async def test_permission_denied(self, tmp_path):
        script = tmp_path / "script.sh"
        script.write_text("echo hi\n")
        script.chmod(0o644)
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("./script.sh")
        assert result.exit_code == 126
        assert "Permission denied" in result.stderr

    @posix_only
    @pytest.mark.asyncio
    async def test_relative_path_executable(self, tmp_path):
        script = tmp_path / "hello.sh"
        script.write_text("#!/bin/sh\necho from script\n")
        script.chmod(0o755)
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("./hello.sh")
        assert result.stdout == "from script\n"


class TestAndOr:
    """Test && and || short-circuit evaluation."""

    @pytest.mark.asyncio
    async def test_and_runs_on_success(self):
        shell = Shell()
        result = await shell.exec("true && echo yes")
        assert result.stdout == "yes\n"

    @pytest.mark.asyncio
    async def test_and_skips_on_failure(self):
        shell = Shell()
        result = await shell.exec("false && echo no; echo $?")
        assert result.stdout == "1\n"

    @pytest.mark.asyncio
    async def test_or_runs_on_failure(self):
        shell = Shell()
        result = await shell.exec("false || echo fallback")
        assert result.stdout == "fallback\n"
        assert result.exit_code == 0

    @pytest.mark.asyncio
    async def test_or_skips_on_success(self):
        shell = Shell()
        result = await shell.exec("true || echo no")
        assert result.stdout == ""

    @pytest.mark.asyncio
    async def test_chain(self):
        shell = Shell()
        result = await shell.exec("false && echo a || echo b && echo c")
        assert result.stdout == "b\nc\n"


class TestPipelines:
    """Test pipeline execution."""

    @posix_only
    @pytest.mark.asyncio
    async def test_pipe_to_external(self):
        shell = Shell()
        result = await shell.exec("echo hi | tr h H")
        assert result.stdout == "Hi\n"
        assert result.exit_code == 0

    @pytest.mark.asyncio
    async def test_pipe_between_builtins(self):
        shell = Shell()
        result = await shell.exec("echo hello | cat | cat")
        assert result.stdout == "hello\n"

    @pytest.mark.asyncio
    async def test_external_to_builtin(self):
        shell = Shell()
        result = await shell.exec(py("print(\"from python\")") + " | cat")
        assert result.stdout.strip() == "from python"

    @pytest.mark.asyncio
    async def test_large_output_through_pipe(self):
        shell = Shell()
        result = await shell.exec(py("print(\"x\" * 200000)") + " | cat")
        assert len(result.stdout.strip()) == 200000

    @pytest.mark.asyncio
    async def test_long_pipeline_of_builtins(self):
        shell = Shell()
        result = await asyncio.wait_for(shell.exec("echo hi" + " | cat" * 40), 20)
        assert result.stdout == "hi\n"
        assert result.exit_code == 0

    @pytest.mark.asyncio
    async def test_status_is_last_stage(self):
        shell = Shell()
        assert (await shell.exec("false | true")).exit_code == 0
        assert (await shell.exec("true | false")).exit_code == 1

    @pytest.mark.asyncio
    async def test_negation(self):
        shell = Shell()
        assert (await shell.exec("! false")).exit_code == 0
        assert (await shell.exec("! true")).exit_code == 1
        assert (await shell.exec("! echo a | false")).exit_code == 0

    @pytest.mark.asyncio
    async def test_stages_run_concurrently(self):
        shell = Shell()
        start = time.monotonic()
        result = await shell.exec("sleep 0.5 | sleep 0.5")
        assert result.exit_code == 0
        assert time.monotonic() - start < 0.9

    @pytest.mark.asyncio
    async def test_stage_state_is_isolated(self):
        shell = Shell()
        result = await shell.exec('X=1 | true; echo "[$X]"')
        assert result.stdout == "[]\n"

    @pytest.mark.asyncio
    async def test_exit_only_ends_stage(self):
        shell = Shell()
        result = await shell.exec("exit 3 | echo after; echo $?")
        assert result.stdout == "after\n0\n"

    @pytest.mark.asyncio
    async def test_stage_redirection_overrides_pipe(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("echo to-file > out.txt | cat; cat out.txt")
        assert result.stdout == "to-file\n"


class TestPipefail:
    """Test set -o pipefail."""

    @pytest.mark.asyncio
    async def test_pipefail_reports_failure(self):
        shell = Shell()
        result = await shell.exec("set -o pipefail; false | true")
        assert result.exit_code == 1

    @pytest.mark.asyncio
    async def test_pipefail_rightmost_failure(self):
        shell = Shell(pipefail=True)
        result = await shell.exec("(exit 3) | (exit 4) | true")
        assert result.exit_code == 4

    @pytest.mark.asyncio
    async def test_pipefail_off(self):
        shell = Shell()
        result = await shell.exec("set -o pipefail; set +o pipefail; false | true")
        assert result.exit_code == 0


class TestVariables:
    """Test variable assignment and expansion."""

    @pytest.mark.asyncio
    async def test_assignment_and_expansion(self):
        shell = Shell()
        result = await shell.exec("A=hello; echo $A ${A}world")
        assert result.stdout == "hello helloworld\n"

    @pytest.mark.asyncio
    async def test_state_persists_across_exec(self):
        shell = Shell()
        await shell.exec("A=kept")
        result = await shell.exec("echo $A")
        assert result.stdout == "kept\n"
        assert shell.env.get("A") == "kept"

    @pytest.mark.asyncio
    async def test_unset_variable_is_empty(self):
        shell = Shell()
        result = await shell.exec('echo "[$NOT_SET_ANYWHERE_XYZ]"')
        assert result.stdout == "[]\n"

    @pytest.mark.asyncio
    async def test_exit_status_variable(self):
        shell = Shell()
        result = await shell.exec("false; echo $?; echo $?")
        assert result.stdout == "1\n0\n"

    @pytest.mark.asyncio
    async def test_prefix_assignment_reaches_child_only(self):
        shell = Shell()
        result = await shell.exec(
            "GREETING=hi " + py("import os; print(os.environ[\"GREETING\"])") + '; echo "[$GREETING]"'
        )
        assert result.stdout.split() == ["hi", "[]"]

    @pytest.mark.asyncio
    async def test_export_reaches_child(self):
        shell = Shell()
        result = await shell.exec(
            "export FOO=bar; " + py("import os; print(os.environ.get(\"FOO\"))")
        )
        assert result.stdout.strip() == "bar"

    @pytest.mark.asyncio
    async def test_unexported_does_not_reach_child(self):
        shell = Shell()
        result = await shell.exec(
            "LOCAL_ONLY_XYZ=1; " + py("import os; print(os.environ.get(\"LOCAL_ONLY_XYZ\"))")
        )
        assert result.stdout.strip() == "None"

    @pytest.mark.asyncio
    async def test_reassigning_exported_keeps_export(self):
        shell = Shell()
        result = await shell.exec(
            "export FOO=1; FOO=2; " + py("import os; print(os.environ[\"FOO\"])")
        )
        assert result.stdout.strip() == "2"

    @pytest.mark.asyncio
    async def test_constructor_env_is_exported(self):
        shell = Shell(env={"FROM_CALLER": "yes"})
        result = await shell.exec(py("import os; print(os.environ[\"FROM_CALLER\"])"))
        assert result.stdout.strip() == "yes"

    @pytest.mark.asyncio
    async def test_exec_env(self):
        shell = Shell()
        result = await shell.exec("echo $PER_CALL", env={"PER_CALL": "value"})
        assert result.stdout == "value\n"

    @pytest.mark.asyncio
    async def test_result_env(self):
        shell = Shell()
        result = await shell.exec("RESULT_VAR=42")
        assert result.env["RESULT_VAR"] == "42"

    @pytest.mark.asyncio
    async def test_assignment_only_sees_earlier_assignments(self):
        shell = Shell()
        result = await shell.exec("A=1 B=$A; echo $B")
        assert result.stdout == "1\n"

    @pytest.mark.asyncio
    async def test_prefix_assignments_see_earlier_prefixes(self):
        shell = Shell()
        result = await shell.exec(
            "A=1 B=$A " + py("import os; print(os.environ[\"B\"])") + "; echo \"[$A]\""
        )
        assert result.stdout.split() == ["1", "[]"]


class TestQuoting:
    """Test quoting, field splitting and argument boundaries."""

    @pytest.mark.asyncio
    async def test_unquoted_expansion_is_split(self):
        shell = Shell()
        result = await shell.exec('X="a   b"; echo $X')
        assert result.stdout == "a b\n"

    @pytest.mark.asyncio
    async def test_double_quotes_preserve_whitespace(self):
        shell = Shell()
        result = await shell.exec('X="a   b"; echo "$X"')
        assert result.stdout == "a   b\n"

    @pytest.mark.asyncio
    async def test_single_quotes_are_literal(self):
        shell = Shell()
        result = await shell.exec("X=1; echo '$X'")
        assert result.stdout == "$X\n"

    @pytest.mark.asyncio
    async def test_quoted_variable_is_one_argument(self):
        shell = Shell(env={"HOME": "/home/with space"})
        result = await shell.exec(
            py("import sys; print(len(sys.argv) - 1)") + ' "$HOME" $HOME'
        )
        assert result.stdout.strip() == "3"

    @pytest.mark.asyncio
    async def test_empty_quotes_are_an_argument(self):
        shell = Shell()
        result = await shell.exec(
            'E=; ' + py("import sys; print(len(sys.argv) - 1)") + ' "" $E'
        )
        assert result.stdout.strip() == "1"

    @pytest.mark.asyncio
    async def test_escaped_space(self):
        shell = Shell()
        result = await shell.exec("echo a\\ \\ b")
        assert result.stdout == "a  b\n"


class TestCd:
    """Test the cd builtin."""

    @pytest.mark.asyncio
    async def test_cd_and_pwd(self, tmp_path):
        shell = Shell()
        result = await shell.exec(f"cd '{tmp_path}' && pwd")
        assert result.stdout == f"{tmp_path}\n"
        assert shell.cwd == str(tmp_path)

    @pytest.mark.asyncio
    async def test_cd_relative(self, tmp_path):
        (tmp_path / "sub").mkdir()
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("cd sub; pwd; cd ..; pwd")
        assert result.stdout == f"{tmp_path / 'sub'}\n{tmp_path}\n"

    @pytest.mark.asyncio
    async def test_cd_nonexistent(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("cd does_not_exist")
        assert result.exit_code == 1
        assert result.stderr == "taskshell: cd: does_not_exist: No such file or directory\n"
        assert shell.cwd == str(tmp_path)

    @pytest.mark.asyncio
    async def test_cd_missing_component_before_dotdot(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("cd nonexistent/.. && pwd")
        assert result.exit_code == 1
        assert result.stdout == ""
        assert shell.cwd == str(tmp_path)

    @pytest.mark.asyncio
    async def test_cd_to_file(self, tmp_path):
        (tmp_path / "file.txt").write_text("x")
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("cd file.txt")
        assert result.exit_code == 1
        assert "Not a directory" in result.stderr

    @pytest.mark.asyncio
    async def test_cd_updates_pwd_and_oldpwd(self, tmp_path):
        (tmp_path / "sub").mkdir()
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec('cd sub; echo "$PWD"; echo "$OLDPWD"')
        assert result.stdout == f"{tmp_path / 'sub'}\n{tmp_path}\n"

    @pytest.mark.asyncio
    async def test_cd_dash(self, tmp_path):
        (tmp_path / "sub").mkdir()
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("cd sub; cd -")
        assert result.stdout == f"{tmp_path}\n"
        assert shell.cwd == str(tmp_path)

    @pytest.mark.asyncio
    async def test_cd_home(self, tmp_path):
        shell = Shell(env={"HOME": str(tmp_path)})
        await shell.exec("cd")
        assert shell.cwd == str(tmp_path)

    @pytest.mark.asyncio
    async def test_external_runs_in_shell_cwd(self, tmp_path):
        shell = Shell()
        result = await shell.exec(f"cd '{tmp_path}'; " + py("import os; print(os.getcwd())"))
        assert os.path.samefile(result.stdout.strip(), tmp_path)


class TestRedirections:
    """Test redirections."""

    @pytest.mark.asyncio
    async def test_redirect_stdout_to_file(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("echo hello > out.txt")
        assert result.stdout == ""
        assert (tmp_path / "out.txt").read_text() == "hello\n"

    @pytest.mark.asyncio
    async def test_redirect_truncates(self, tmp_path):
        (tmp_path / "out.txt").write_text("old content\n")
        shell = Shell(cwd=str(tmp_path))
        await shell.exec("echo new > out.txt")
        assert (tmp_path / "out.txt").read_text() == "new\n"

    @pytest.mark.asyncio
    async def test_redirect_append(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        await shell.exec("echo first > log.txt; echo second >> log.txt")
        assert (tmp_path / "log.txt").read_text() == "first\nsecond\n"

    @pytest.mark.asyncio
    async def test_redirect_stdin(self, tmp_path):
        (tmp_path / "in.txt").write_text("from file\n")
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("cat < in.txt")
        assert result.stdout == "from file\n"

    @pytest.mark.asyncio
    async def test_redirect_stdin_to_external(self, tmp_path):
        (tmp_path / "in.txt").write_text("abc")
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec(py("import sys; print(sys.stdin.read().upper())") + " < in.txt")
        assert result.stdout.strip() == "ABC"

    @pytest.mark.asyncio
    async def test_redirect_stderr(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec(py("import sys; sys.stderr.write(\"oops\")") + " 2> err.txt")
        assert result.stderr == ""
        assert (tmp_path / "err.txt").read_text() == "oops"

    @pytest.mark.asyncio
    async def test_stderr_to_stdout(self):
        shell = Shell()
        result = await shell.exec("cat missing_file_xyz 2>&1")
        assert result.stdout == "cat: missing_file_xyz: No such file or directory\n"
        assert result.stderr == ""

    @pytest.mark.asyncio
    async def test_stdout_to_stderr(self):
        shell = Shell()
        result = await shell.exec("echo oops >&2")
        assert result.stdout == ""
        assert result.stderr == "oops\n"

    @pytest.mark.asyncio
    async def test_redirections_apply_left_to_right(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        script = py("import sys; print(\"out\"); sys.stderr.write(\"err\\n\")")
        result = await shell.exec(f"{script} > both.txt 2>&1")
        assert sorted((tmp_path / "both.txt").read_text().split()) == ["err", "out"]

        result = await shell.exec(f"{script} 2>&1 > only_out.txt")
        assert (tmp_path / "only_out.txt").read_text().strip() == "out"
        assert result.stdout.strip() == "err"

    @pytest.mark.asyncio
    async def test_dev_null(self):
        shell = Shell()
        result = await shell.exec("echo hidden > /dev/null; cat missing_xyz 2> /dev/null")
        assert result.stdout == ""
        assert result.stderr == ""
        assert result.exit_code == 1

    @pytest.mark.asyncio
    async def test_missing_input_fails_stage(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("cat < missing.txt && echo ran; echo after")
        assert result.stdout == "after\n"
        assert result.stderr == "taskshell: missing.txt: No such file or directory\n"

    @pytest.mark.asyncio
    async def test_redirect_without_command_creates_file(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("> empty.txt")
        assert result.exit_code == 0
        assert (tmp_path / "empty.txt").read_text() == ""

    @pytest.mark.asyncio
    async def test_redirect_target_is_expanded(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        await shell.exec('NAME="my file.txt"; echo x > $NAME')
        assert (tmp_path / "my file.txt").read_text() == "x\n"


class TestSubshells:
    """Test subshell isolation."""

    @pytest.mark.asyncio
    async def test_variables_do_not_leak(self):
        shell = Shell()
        result = await shell.exec("X=outer; (X=inner; echo $X); echo $X")
        assert result.stdout == "inner\nouter\n"

    @pytest.mark.asyncio
    async def test_cd_does_not_leak(self, tmp_path):
        (tmp_path / "sub").mkdir()
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("(cd sub; pwd); pwd")
        assert result.stdout == f"{tmp_path / 'sub'}\n{tmp_path}\n"

    @pytest.mark.asyncio
    async def test_options_do_not_leak(self):
        shell = Shell()
        result = await shell.exec("(set -e); false; echo still running")
        assert result.stdout == "still running\n"

    @pytest.mark.asyncio
    async def test_exit_ends_only_subshell(self):
        shell = Shell()
        result = await shell.exec("(echo in; exit 4; echo never); echo $?")
        assert result.stdout == "in\n4\n"
        assert result.exit_code == 0

    @pytest.mark.asyncio
    async def test_subshell_sees_parent_state(self):
        shell = Shell()
        result = await shell.exec("X=parent; (echo $X)")
        assert result.stdout == "parent\n"

    @pytest.mark.asyncio
    async def test_subshell_redirection(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        await shell.exec("(echo a; echo b) > out.txt")
        assert (tmp_path / "out.txt").read_text() == "a\nb\n"

    @pytest.mark.asyncio
    async def test_subshell_in_pipeline(self):
        shell = Shell()
        result = await shell.exec("(echo one; echo two) | cat")
        assert result.stdout == "one\ntwo\n"


class TestBackground:
    """Test background statements."""

    @pytest.mark.asyncio
    async def test_background_is_joined(self):
        shell = Shell()
        start = time.monotonic()
        result = await shell.exec("sleep 0.3 & echo done")
        assert result.stdout == "done\n"
        assert result.exit_code == 0
        assert time.monotonic() - start >= 0.25

    @pytest.mark.asyncio
    async def test_background_runs_concurrently(self):
        shell = Shell()
        result = await shell.exec("(sleep 0.2; echo bg) & echo fg")
        assert result.stdout == "fg\nbg\n"

    @pytest.mark.asyncio
    async def test_background_status_is_zero(self):
        shell = Shell()
        result = await shell.exec("false & echo $?")
        assert result.stdout == "0\n"

    @pytest.mark.asyncio
    async def test_background_state_is_isolated(self):
        shell = Shell()
        result = await shell.exec('X=1 & wait; echo "[$X]"')
        assert result.stdout == "[]\n"

    @pytest.mark.asyncio
    async def test_wait(self):
        shell = Shell()
        result = await shell.exec("(sleep 0.1; echo bg) & wait; echo after")
        assert result.stdout == "bg\nafter\n"

    @pytest.mark.asyncio
    async def test_wait_returns_job_status(self):
        shell = Shell()
        result = await shell.exec("(exit 5) & wait; echo $?")
        assert result.stdout == "5\n"

    @pytest.mark.asyncio
    async def test_wait_without_jobs(self):
        shell = Shell()
        result = await shell.exec("wait")
        assert result.exit_code == 0


class TestExit:
    """Test the exit builtin."""

    @pytest.mark.asyncio
    async def test_exit_stops_script(self):
        shell = Shell()
        result = await shell.exec("echo a; exit 3; echo b")
        assert result.stdout == "a\n"
        assert result.exit_code == 3

    @pytest.mark.asyncio
    async def test_exit_uses_last_status(self):
        shell = Shell()
        result = await shell.exec("false; exit")
        assert result.exit_code == 1

    @pytest.mark.asyncio
    async def test_exit_wraps(self):
        shell = Shell()
        result = await shell.exec("exit 257")
        assert result.exit_code == 1

    @pytest.mark.asyncio
    async def test_exit_non_numeric(self):
        shell = Shell()
        result = await shell.exec("exit abc; echo never")
        assert result.exit_code == 2
        assert result.stdout == ""
        assert "numeric argument required" in result.stderr

    @pytest.mark.asyncio
    async def test_exit_in_and_or(self):
        shell = Shell()
        result = await shell.exec("false || exit 9; echo never")
        assert result.exit_code == 9
        assert result.stdout == ""


class TestErrexit:
    """Test set -e."""

    @pytest.mark.asyncio
    async def test_errexit_stops_on_failure(self):
        shell = Shell()
        result = await shell.exec("set -e; echo before; false; echo after")
        assert result.stdout == "before\n"
        assert result.exit_code == 1

    @pytest.mark.asyncio
    async def test_errexit_from_constructor(self):
        shell = Shell(errexit=True)
        result = await shell.exec("nonexistent_command_xyz; echo after")
        assert result.stdout == ""
        assert result.exit_code == 127

    @pytest.mark.asyncio
    async def test_errexit_ignores_handled_failures(self):
        shell = Shell()
        result = await shell.exec("set -e; false || true; false && true; ! true; echo reached")
        assert result.stdout == "reached\n"

    @pytest.mark.asyncio
    async def test_errexit_after_subshell_failure(self):
        shell = Shell()
        result = await shell.exec("set -e; (false); echo never")
        assert result.stdout == ""
        assert result.exit_code == 1

    @pytest.mark.asyncio
    async def test_errexit_can_be_disabled(self):
        shell = Shell()
        result = await shell.exec("set -e; set +e; false; echo reached")
        assert result.stdout == "reached\n"


class TestXtrace:
    """Test set -x."""

    @pytest.mark.asyncio
    async def test_xtrace_prints_expanded_command(self):
        shell = Shell()
        result = await shell.exec("set -x; X=world; echo hello $X")
        assert result.stdout == "hello world\n"
        assert result.stderr == "+ echo hello world\n"

    @pytest.mark.asyncio
    async def test_xtrace_from_constructor(self):
        shell = Shell(xtrace=True)
        result = await shell.exec("true")
        assert result.stderr == "+ true\n"


class TestGlobbing:
    """Test glob expansion against the working directory."""

    @pytest.mark.asyncio
    async def test_glob_matches_sorted(self, tmp_path):
        for name in ("b.txt", "a.txt", "c.log"):
            (tmp_path / name).write_text("")
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("echo *.txt")
        assert result.stdout == "a.txt b.txt\n"

    @pytest.mark.asyncio
    async def test_no_match_is_literal(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("echo *.nothing")
        assert result.stdout == "*.nothing\n"

    @pytest.mark.asyncio
    async def test_quoted_pattern_is_literal(self, tmp_path):
        (tmp_path / "a.txt").write_text("")
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("echo '*.txt' \"*\".txt")
        assert result.stdout == "*.txt *.txt\n"

    @pytest.mark.asyncio
    async def test_question_mark_and_brackets(self, tmp_path):
        for name in ("file1", "file2", "file10"):
            (tmp_path / name).write_text("")
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("echo file? file[2]")
        assert result.stdout == "file1 file2 file2\n"

    @pytest.mark.asyncio
    async def test_hidden_files_not_matched(self, tmp_path):
        (tmp_path / ".hidden").write_text("")
        (tmp_path / "shown").write_text("")
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("echo *")
        assert result.stdout == "shown\n"

    @pytest.mark.asyncio
    async def test_glob_in_subdirectory(self, tmp_path):
        (tmp_path / "logs").mkdir()
        (tmp_path / "logs" / "x.log").write_text("")
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("echo logs/*.log")
        assert result.stdout == f"logs{os.sep}x.log\n"

    @pytest.mark.asyncio
    async def test_unquoted_variable_is_globbed(self, tmp_path):
        (tmp_path / "a.txt").write_text("")
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("P='*.txt'; echo $P; echo \"$P\"")
        assert result.stdout == "a.txt\n*.txt\n"

    @pytest.mark.asyncio
    async def test_assignment_is_not_globbed(self, tmp_path):
        (tmp_path / "a.txt").write_text("")
        shell = Shell(cwd=str(tmp_path))
        await shell.exec("P=*.txt")
        assert shell.env["P"] == "*.txt"

    @pytest.mark.asyncio
    async def test_custom_glob_matcher(self):
        class FakeMatcher:
            def match(self, pattern, base_dir):
                return ["z", "y"] if pattern == "*" else []

        shell = Shell(glob_matcher=FakeMatcher())
        result = await shell.exec("echo *")
        assert result.stdout == "y z\n"


class TestTilde:
    """Test tilde expansion."""

    @pytest.mark.asyncio
    async def test_tilde_uses_home(self):
        shell = Shell(env={"HOME": "/home/tester"})
        result = await shell.exec("echo ~ ~/src")
        assert result.stdout == "/home/tester /home/tester/src\n"

    @pytest.mark.asyncio
    async def test_quoted_tilde_is_literal(self):
        shell = Shell(env={"HOME": "/home/tester"})
        result = await shell.exec("echo '~' \"~\" a~")
        assert result.stdout == "~ ~ a~\n"

    @pytest.mark.asyncio
    async def test_tilde_falls_back_to_resolver(self):
        shell = Shell(home_dir=lambda: "/resolved/home")
        result = await shell.exec("unset HOME; echo ~")
        assert result.stdout == "/resolved/home\n"

    @pytest.mark.asyncio
    async def test_tilde_user_is_literal(self):
        shell = Shell()
        result = await shell.exec("echo ~someone")
        assert result.stdout == "~someone\n"


class TestCancellation:
    """Test timeouts and cancellation tokens."""

    @pytest.mark.asyncio
    async def test_timeout_stops_builtin_blocked_on_read(self):
        read_fd, write_fd = os.pipe()
        try:
            result = await asyncio.wait_for(Shell().exec("cat", stdin=read_fd, timeout=0.3), 5)
        finally:
            os.close(write_fd)
            os.close(read_fd)
        assert result.cancelled
        assert result.exit_code == 130

    @pytest.mark.asyncio
    async def test_timeout_stops_builtin_blocked_on_write(self, tmp_path):
        (tmp_path / "big.txt").write_text("x" * 1_000_000)
        read_fd, write_fd = os.pipe()
        try:
            result = await asyncio.wait_for(
                Shell(cwd=str(tmp_path)).exec("cat big.txt", stdout=write_fd, timeout=0.3), 5
            )
        finally:
            os.close(read_fd)
            os.close(write_fd)
        assert result.cancelled
        assert result.exit_code == 130

    @pytest.mark.asyncio
    async def test_timeout_stops_sleep(self):
        shell = Shell()
        start = time.monotonic()
        result = await shell.exec("sleep 10; echo after", timeout=0.2)
        assert result.cancelled
        assert result.exit_code == 130
        assert result.stdout == ""
        assert time.monotonic() - start < 5

    @pytest.mark.asyncio
    async def test_timeout_terminates_external_process(self):
        shell = Shell()
        start = time.monotonic()
        result = await shell.exec(py("import time; time.sleep(30)"), timeout=0.5)
        assert result.cancelled
        assert result.exit_code == 130
        assert time.monotonic() - start < 10

    @pytest.mark.asyncio
    async def test_cancel_from_another_task(self):
        shell = Shell()
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.2, token.cancel)
        result = await shell.exec("echo started; sleep 10 | sleep 10", cancellation=token)
        assert result.cancelled
        assert result.stdout == "started\n"

    @pytest.mark.asyncio
    async def test_cancelled_token_runs_nothing(self):
        shell = Shell()
        token = CancellationToken()
        token.cancel()
        result = await shell.exec("echo never", cancellation=token)
        assert result.cancelled
        assert result.stdout == ""

    @pytest.mark.asyncio
    async def test_background_jobs_are_cancelled(self):
        shell = Shell()
        start = time.monotonic()
        result = await shell.exec("sleep 10 & echo started", timeout=0.3)
        assert result.cancelled
        assert result.stdout == "started\n"
        assert time.monotonic() - start < 5

    @pytest.mark.asyncio
    async def test_shell_usable_after_cancellation(self):
        shell = Shell()
        await shell.exec("sleep 10", timeout=0.1)
        result = await shell.exec("echo again")
        assert result.stdout == "again\n"
        assert not result.cancelled


class TestParseErrors:
    """Test syntax errors reported by exec."""

    @pytest.mark.asyncio
    async def test_syntax_error_exit_code(self):
        shell = Shell()
        result = await shell.exec("echo a; echo |")
        assert result.exit_code == 2
        assert result.stdout == ""
        assert result.stderr.startswith("taskshell: syntax error: expected a command after '|'")
        assert "<script>:1:15" in result.stderr

    @pytest.mark.asyncio
    async def test_syntax_error_filename(self):
        shell = Shell()
        result = await shell.exec("echo 'open", filename="build.sh")
        assert "build.sh:1:6" in result.stderr


class TestStreams:
    """Test caller-supplied streams."""

    @pytest.mark.asyncio
    async def test_stdout_to_file_object(self, tmp_path):
        shell = Shell()
        path = tmp_path / "out.txt"
        with open(path, "w") as f:
            result = await shell.exec("echo streamed", stdout=f)
        assert result.stdout == ""
        assert path.read_text() == "streamed\n"

    @pytest.mark.asyncio
    async def test_stdin_from_file_object(self, tmp_path):
        path = tmp_path / "in.txt"
        path.write_text("line one\nline two\n")
        shell = Shell()
        with open(path, "rb") as f:
            result = await shell.exec("cat", stdin=f)
        assert result.stdout == "line one\nline two\n"

    @pytest.mark.asyncio
    async def test_stdin_defaults_to_null_device(self):
        shell = Shell()
        result = await shell.exec("cat")
        assert result.stdout == ""
        assert result.exit_code == 0

    @pytest.mark.asyncio
    async def test_stderr_to_fd(self, tmp_path):
        path = tmp_path / "err.txt"
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC)
        try:
            shell = Shell()
            result = await shell.exec("echo problem >&2", stderr=fd)
        finally:
            os.close(fd)
        assert result.stderr == ""
        assert path.read_text() == "problem\n"


class TestShellApi:
    """Test Shell construction, reset and run."""

    def test_run_sync(self):
        shell = Shell()
        result = shell.run("echo sync")
        assert result.stdout == "sync\n"

    def test_run_accepts_exec_options(self, tmp_path):
        shell = Shell()
        result = shell.run("pwd", cwd=str(tmp_path))
        assert result.stdout == f"{tmp_path}\n"

    @pytest.mark.asyncio
    async def test_reset(self, tmp_path):
        shell = Shell()
        initial_cwd = shell.cwd
        await shell.exec(f"X=1; set -e; cd '{tmp_path}'")
        shell.reset()
        assert shell.cwd == initial_cwd
        assert "X" not in shell.env
        result = await shell.exec("false; echo errexit off")
        assert result.stdout == "errexit off\n"

    @pytest.mark.asyncio
    async def test_pwd_variable_set(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec('echo "$PWD"')
        assert result.stdout == f"{tmp_path}\n"
