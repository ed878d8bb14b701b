"""Tests for the portable pwd command."""

import os
import sys

import pytest
from taskshell import Shell


class TestPwd:
    """Test pwd -L/-P."""

    @pytest.mark.asyncio
    async def test_prints_cwd(self, tmp_path):
        result = await Shell(cwd=str(tmp_path)).exec("pwd")
        assert result.stdout == f"{tmp_path}\n"

    @pytest.mark.asyncio
    async def test_follows_cd(self, tmp_path):
        (tmp_path / "sub").mkdir()
        result = await Shell(cwd=str(tmp_path)).exec("cd sub && pwd")
        assert result.stdout == f"{tmp_path / 'sub'}\n"

    @pytest.mark.asyncio
    async def test_invalid_option(self):
        result = await Shell().exec("pwd -c")
        assert result.stderr == "pwd: invalid option -- 'c'\n"
        assert result.exit_code == 1

    @pytest.mark.skipif(sys.platform == "win32", reason="needs symlinks")
    @pytest.mark.asyncio
    async def test_logical_and_physical(self, tmp_path):
        real = tmp_path / "real_dir"
        real.mkdir()
        os.symlink(real, tmp_path / "link_dir")
        shell = Shell(cwd=str(tmp_path))
        await shell.exec("cd link_dir")

        result = await shell.exec("pwd")
        assert result.stdout == f"{tmp_path / 'link_dir'}\n"
        result = await shell.exec("pwd -L")
        assert result.stdout == f"{tmp_path / 'link_dir'}\n"
        result = await shell.exec("pwd -P")
        assert result.stdout == f"{os.path.realpath(real)}\n"
        result = await shell.exec("pwd -PL")
        assert result.stdout == f"{tmp_path / 'link_dir'}\n"
