import huf


def test_compress_then_decompress(tmp_path, capsys):
    src = tmp_path / "notes.txt"
    src.write_bytes(b"to be or not to be\n" * 10)

    assert huf.main(["compress", str(src)]) == 0
    assert (tmp_path / "notes.txt.huf").exists()
    assert "Ratio" in capsys.readouterr().out

    assert huf.main(["decompress", str(src) + ".huf"]) == 0
    assert (tmp_path / "notes_unc.txt").read_bytes() == src.read_bytes()


def test_code_table_output(tmp_path, capsys):
    src = tmp_path / "a.txt"
    src.write_bytes(b"AAAAA")
    assert huf.main(["code", str(src)]) == 0
    out = capsys.readouterr().out
    assert "'A'" in out
    assert "EOF" in out
    assert "Weighted path length: 6 bits" in out


def test_round_trip_command_cleans_up(tmp_path, capsys):
    src = tmp_path / "data.bin"
    src.write_bytes(bytes(range(256)))
    assert huf.main(["test", str(src)]) == 0
    assert "Round trip OK" in capsys.readouterr().out
    assert sorted(p.name for p in tmp_path.iterdir()) == ["data.bin"]


def test_errors_exit_non_zero(tmp_path, capsys):
    assert huf.main(["compress", str(tmp_path / "missing.txt")]) == 1
    assert huf.main(["decompress", str(tmp_path / "plain.txt")]) == 1

    bad = tmp_path / "bad.txt.huf"
    bad.write_bytes(b"not a huf file")
    assert huf.main(["decompress", str(bad)]) == 1
    assert "error:" in capsys.readouterr().err


def test_round_trip_command_cleans_up_after_failure(tmp_path, monkeypatch, capsys):
    src = tmp_path / "data.bin"
    src.write_bytes(b"some bytes to squeeze")

    def broken_decompress(path):
        raise huf.huff.CorruptStreamError("bit stream ended early")

    monkeypatch.setattr(huf.huff, "decompress", broken_decompress)
    assert huf.main(["test", str(src)]) == 1
    assert "bit stream ended early" in capsys.readouterr().err
    assert sorted(p.name for p in tmp_path.iterdir()) == ["data.bin"]
