"""Tests for the portable cat command."""

import pytest
from taskshell import Shell


class TestCat:
    """Test file concatenation."""

    @pytest.mark.asyncio
    async def test_single_file(self, tmp_path):
        (tmp_path / "a.txt").write_text("alpha\n")
        result = await Shell(cwd=str(tmp_path)).exec("cat a.txt")
        assert result.stdout == "alpha\n"
        assert result.exit_code == 0

    @pytest.mark.asyncio
    async def test_multiple_files(self, tmp_path):
        (tmp_path / "a.txt").write_text("alpha\n")
        (tmp_path / "b.txt").write_text("beta\n")
        result = await Shell(cwd=str(tmp_path)).exec("cat a.txt b.txt")
        assert result.stdout == "alpha\nbeta\n"

    @pytest.mark.asyncio
    async def test_missing_file_continues(self, tmp_path):
        (tmp_path / "b.txt").write_text("beta\n")
        result = await Shell(cwd=str(tmp_path)).exec("cat missing.txt b.txt")
        assert result.stdout == "beta\n"
        assert result.stderr == "cat: missing.txt: No such file or directory\n"
        assert result.exit_code == 1

    @pytest.mark.asyncio
    async def test_directory(self, tmp_path):
        (tmp_path / "sub").mkdir()
        result = await Shell(cwd=str(tmp_path)).exec("cat sub")
        assert result.stderr == "cat: sub: Is a directory\n"
        assert result.exit_code == 1

    @pytest.mark.asyncio
    async def test_reads_stdin_from_pipe(self):
        result = await Shell().exec("echo piped | cat")
        assert result.stdout == "piped\n"

    @pytest.mark.asyncio
    async def test_dash_is_stdin(self, tmp_path):
        (tmp_path / "a.txt").write_text("file\n")
        result = await Shell(cwd=str(tmp_path)).exec("echo in | cat a.txt - a.txt")
        assert result.stdout == "file\nin\nfile\n"

    @pytest.mark.asyncio
    async def test_input_redirection(self, tmp_path):
        (tmp_path / "a.txt").write_text("redirected\n")
        result = await Shell(cwd=str(tmp_path)).exec("cat < a.txt")
        assert result.stdout == "redirected\n"

    @pytest.mark.asyncio
    async def test_binary_content(self, tmp_path):
        (tmp_path / "data.bin").write_bytes(b"\x00\x01\xff\n")
        (tmp_path / "copy.bin").write_bytes(b"")
        result = await Shell(cwd=str(tmp_path)).exec("cat data.bin > copy.bin")
        assert result.exit_code == 0
        assert (tmp_path / "copy.bin").read_bytes() == b"\x00\x01\xff\n"

    @pytest.mark.asyncio
    async def test_invalid_option(self):
        result = await Shell().exec("cat -z")
        assert result.stderr == "cat: invalid option -- 'z'\n"
        assert result.exit_code == 1
