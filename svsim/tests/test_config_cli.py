import numpy as np
import pytest

from svsim.cli import main, parse_instruction, parse_program, print_probabilities
from svsim.config import SimConfig


def test_config_defaults():
    cfg = SimConfig()
    assert cfg.kernel == "serial"
    assert cfg.tol == 1e-9
    assert SimConfig(dtype=np.complex64).tol == 1e-5


def test_config_from_env():
    cfg = SimConfig.from_env({"SVSIM_KERNEL": "Dense", "SVSIM_DTYPE": "complex64",
                              "SVSIM_THREADS": "2", "SVSIM_NORM_TOL": "1e-7"})
    assert cfg.kernel == "dense"
    assert cfg.dtype is np.complex64
    assert cfg.num_threads == 2
    assert cfg.tol == 1e-7
    assert SimConfig.from_env({}) == SimConfig()


@pytest.mark.parametrize("env", [{"SVSIM_KERNEL": "gpu"}, {"SVSIM_DTYPE": "float32"},
                                 {"SVSIM_THREADS": "0"}])
def test_config_rejects_bad_values(env):
    with pytest.raises(ValueError):
        SimConfig.from_env(env)


def test_parse_instruction():
    assert parse_instruction("h q[0]") == ("h", (0,))
    assert parse_instruction("CNOT q[0],q[1]") == ("cnot", (0, 1))
    assert parse_instruction("rz(0.5) q[2]") == ("rz", (2, 0.5))
    with pytest.raises(ValueError):
        parse_instruction("h")


def test_parse_program_skips_comments():
    ops = parse_program(["# bell pair", "h q[0]", "", "cnot q[0],q[1]  # entangle"])
    assert ops == [("h", (0,)), ("cnot", (0, 1))]


def test_cli_run_prints_probabilities(capsys):
    assert main(["run", "-n", "2", "h q[0]", "cnot q[0],q[1]"]) == 0
    out = capsys.readouterr().out
    assert "State |00>: 0.50000" in out
    assert "State |11>: 0.50000" in out
    assert "State |01>: 0.00000" in out


def test_cli_run_from_file(tmp_path, capsys):
    prog = tmp_path / "flip.txt"
    prog.write_text("x q[1]\n")
    assert main(["run", "-n", "2", "--file", str(prog), "--threshold", "0.1",
                 "--shots", "5", "--seed", "1"]) == 0
    out = capsys.readouterr().out
    assert "State |10>: 1.00000" in out
    assert "10: 5" in out


def test_cli_reports_errors(capsys):
    assert main(["run", "-n", "1", "cnot q[0],q[1]"]) == 2
    assert main(["run", "-n", "1", "foo q[0]"]) == 2


def test_cli_grover(capsys):
    assert main(["grover", "-n", "2", "--target", "3", "--iterations", "1"]) == 0
    out = capsys.readouterr().out
    assert "P(marked) = 1.00000" in out
    assert main(["grover", "-n", "2", "--target", ""]) == 2


def test_print_probabilities_shows_every_state_by_default(capsys):
    print_probabilities(np.array([1.0, 0.0, 0.0, 0.0]), 2)
    out = capsys.readouterr().out
    assert out.count("State |") == 4
    assert "State |11>: 0.00000" in out
    print_probabilities(np.array([1.0, 0.0, 0.0, 0.0]), 2, threshold=0.0)
    assert capsys.readouterr().out.count("State |") == 1
