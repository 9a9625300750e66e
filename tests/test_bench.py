"""Smoke tests for the headless profiling harness."""

from life_bench import FakeWindow, main, run_benchmark


def test_line_timing_report(capsys):
    run_benchmark(n_frames=5, term_rows=10, term_cols=30, line_timing=True, seed=1)
    out = capsys.readouterr().out
    assert "Grid: 30x18" in out
    assert "tick()" in out
    assert "render()" in out
    assert "Frames over budget" in out


def test_profile_report(capsys, tmp_path):
    dump = tmp_path / "prof.out"
    main(["-n", "3", "--rows", "8", "--cols", "16", "--dump", str(dump)])
    out = capsys.readouterr().out
    assert "Wall time" in out
    assert dump.exists()


def test_fake_window_records_calls():
    window = FakeWindow(5, 7)
    assert window.getmaxyx() == (5, 7)
    window.addstr(0, 0, "x")
    assert window.calls == [(0, 0, "x")]
    window.erase()
    assert window.calls == []
