"""
Tests for the command-line interface and password hashing.
"""

import pytest

from .conftest import BLUE, RED, solid_png, split_png
from ..cli import main
from ..security import PasswordHasher


class TestCLI:
    """Tests for mosaic CLI commands."""

    def test_pixelize(self, tmp_path, capsys):
        path = tmp_path / "split.png"
        path.write_bytes(split_png(RED, BLUE))

        main(["pixelize", str(path), "--blocks", "16"])

        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 4
        assert lines[0] == "#FF0000 #FF0000 #0000FF #0000FF"

    def test_pixelize_invalid_count(self, tmp_path, capsys):
        path = tmp_path / "red.png"
        path.write_bytes(solid_png(RED))

        with pytest.raises(SystemExit) as exc:
            main(["pixelize", str(path), "--blocks", "20"])

        assert exc.value.code == 1
        assert "Invalid block count" in capsys.readouterr().out

    def test_validate_match(self, tmp_path, capsys):
        path = tmp_path / "red.png"
        path.write_bytes(solid_png(RED))

        main(["validate", str(path), "ff0000"])

        assert "MATCH" in capsys.readouterr().out

    def test_validate_mismatch_exits(self, tmp_path, capsys):
        path = tmp_path / "blue.png"
        path.write_bytes(solid_png(BLUE))

        with pytest.raises(SystemExit) as exc:
            main(["validate", str(path), "#FF0000"])

        assert exc.value.code == 1
        assert "MISMATCH" in capsys.readouterr().out

    def test_missing_file(self, tmp_path, capsys):
        with pytest.raises(SystemExit):
            main(["pixelize", str(tmp_path / "nope.png")])
        assert "Error:" in capsys.readouterr().out

    def test_no_command(self):
        with pytest.raises(SystemExit):
            main([])


class TestPasswordHasher:
    """Tests for canvas password hashing."""

    def test_round_trip(self):
        hasher = PasswordHasher(iterations=1000)
        encoded = hasher.hash("secret")

        assert hasher.verify("secret", encoded)
        assert not hasher.verify("Secret", encoded)

    def test_salted(self):
        hasher = PasswordHasher(iterations=1000)
        assert hasher.hash("secret") != hasher.hash("secret")

    @pytest.mark.parametrize("encoded", ["", "plain", "md5$1$00$00", "pbkdf2_sha256$x$zz$00"])
    def test_malformed_hash(self, encoded):
        assert not PasswordHasher(iterations=1000).verify("secret", encoded)
