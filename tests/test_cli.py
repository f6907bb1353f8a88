"""Tests for the joinfiles command line."""

import pytest

from joinfiles import __version__
from joinfiles.cli import main


class TestCli:
    def test_end_to_end(self, make_tree, tmp_path, capsys):
        root = make_tree(
            {
                "a.rs": "fn a() {}\n",
                "b.toml": "[package]\n",
                "target/c.rs": "fn c() {}\n",
                ".git/HEAD": "ref: refs/heads/main\n",
                "README.md": "# readme\n",
            }
        )
        out = tmp_path / "joined.txt"

        code = main(
            ["--root", str(root), "-o", str(out), "-p", "*.rs", "*.toml", "-e", "target", ".git"]
        )

        assert code == 0
        assert out.read_text() == "// FILE: a.rs\nfn a() {}\n\n// FILE: b.toml\n[package]\n\n"
        assert "2 files" in capsys.readouterr().out

    def test_output_inside_root_is_not_included(self, make_tree):
        root = make_tree({"a.txt": "a\n"})
        out = root / "concatenated.txt"

        assert main(["--root", str(root), "-o", str(out)]) == 0
        assert main(["--root", str(root), "-o", str(out)]) == 0

        assert out.read_text() == "// FILE: a.txt\na\n\n"

    def test_invalid_root_exits_nonzero(self, tmp_path, capsys):
        code = main(["--root", str(tmp_path / "missing"), "-o", str(tmp_path / "o.txt")])

        assert code == 1
        assert "does not exist" in capsys.readouterr().err
        assert not (tmp_path / "o.txt").exists()

    def test_missing_config_file(self, make_tree, tmp_path, capsys):
        root = make_tree({"a.txt": "a"})

        code = main(["--root", str(root), "-o", str(tmp_path / "o.txt"), "--config", str(tmp_path / "nope")])

        assert code == 1
        assert "does not exist" in capsys.readouterr().err

    def test_config_file_excludes(self, make_tree, tmp_path):
        root = make_tree({"a.py": "a\n", "poetry.lock": "lock\n"})
        cfg = tmp_path / "extra.txt"
        cfg.write_text("*.lock\n")
        out = tmp_path / "o.txt"

        assert main(["--root", str(root), "-o", str(out), "--config", str(cfg)]) == 0
        assert "poetry.lock" not in out.read_text()

    def test_gitignore_respected_unless_disabled(self, make_tree, tmp_path):
        root = make_tree({".gitignore": "secret.txt\n", "secret.txt": "s\n", "ok.txt": "o\n"})
        out = tmp_path / "o.txt"

        main(["--root", str(root), "-o", str(out)])
        assert "secret.txt" not in out.read_text()

        main(["--root", str(root), "-o", str(out), "--no-gitignore"])
        assert "// FILE: secret.txt" in out.read_text()

    def test_default_excludes(self, make_tree, tmp_path):
        root = make_tree({"node_modules/x/index.js": "x\n", "app.js": "a\n"})
        out = tmp_path / "o.txt"

        main(["--root", str(root), "-o", str(out)])
        assert "node_modules" not in out.read_text()

        main(["--root", str(root), "-o", str(out), "--no-default-excludes"])
        assert "// FILE: node_modules/x/index.js" in out.read_text()

    def test_hidden_and_depth_flags(self, make_tree, tmp_path):
        root = make_tree({".env": "K=V\n", "top.txt": "t\n", "a/b/deep.txt": "d\n"})
        out = tmp_path / "o.txt"

        main(["--root", str(root), "-o", str(out), "--hidden", "--max-depth", "1"])
        text = out.read_text()

        assert "// FILE: .env" in text
        assert "// FILE: top.txt" in text
        assert "deep.txt" not in text

    def test_binary_reported_in_summary(self, make_tree, tmp_path, capsys):
        root = make_tree({"img.png": b"\x89PNG\r\n\x1a\n\x00\x00", "a.txt": "a\n"})

        main(["--root", str(root), "-o", str(tmp_path / "o.txt")])

        out = capsys.readouterr().out
        assert "img.png" in out
        assert "binary" in out

    def test_show_size_footer_and_append(self, make_tree, tmp_path):
        root = make_tree({"a.txt": "abc\n"})
        out = tmp_path / "o.txt"
        out.write_text("HEAD\n")

        main(["--root", str(root), "-o", str(out), "--show-size", "--footer", "--append"])

        assert out.read_text() == "HEAD\n// FILE: a.txt (4 bytes)\nabc\n// END FILE: a.txt\n\n"

    def test_unknown_encoding(self, make_tree, tmp_path, capsys):
        root = make_tree({"a.txt": "a"})

        code = main(["--root", str(root), "-o", str(tmp_path / "o.txt"), "--encoding", "nope-8"])

        assert code == 1
        assert "Unknown encoding" in capsys.readouterr().err

    @pytest.mark.parametrize(
        "args",
        [["--max-depth", "-1"], ["--workers", "0"], ["--binary-threshold", "2"]],
    )
    def test_invalid_numbers_rejected(self, args):
        with pytest.raises(SystemExit) as exc:
            main(args)
        assert exc.value.code == 2

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            main(["--version"])
        assert __version__ in capsys.readouterr().out
