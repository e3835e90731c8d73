# tests/test_dataflow_engine.py
"""
Tests for the worklist solver and the two bundled dataflow analyses.
"""

import logging

import pytest

from dataflow_dce.ctrlflow_graph import build_cfg
from dataflow_dce.dataflow_analyses import (
    ConstantPropagation,
    LiveVariableAnalysis,
    cp_fact_leq,
)
from dataflow_dce.dataflow_engine import (
    DataflowResult,
    Direction,
    WorklistSolver,
    WorklistStrategy,
    check_monotonicity,
    solve,
)
from dataflow_dce.errors import ConfigurationError, ErrorCode, SolverError
from dataflow_dce.facts import CPFact
from dataflow_dce.ir import ConditionOp, PrimitiveType
from tests.conftest import (
    NAC,
    add,
    assign,
    cond,
    const,
    goto,
    if_goto,
    ivar,
    lit,
    make_ir,
    ret,
    var_of,
)


ALL_STRATEGIES = list(WorklistStrategy)


@pytest.fixture
def counting_loop():
    """
    ::

        0: i = 0                  (L1)
        1: if (i >= 10) goto 4    (L2)
        2: i = i + 1              (L3)
        3: goto 1                 (L3)
        4: return i               (L4)
    """
    i = ivar("i")
    end = ret(i, line=4)
    s0 = assign(i, lit(0), line=1)
    s1 = if_goto(cond(ConditionOp.GE, i, lit(10)), end, line=2)
    s2 = assign(i, add(i, lit(1)), line=3)
    s3 = goto(s1, line=3)
    stmts = [s0, s1, s2, s3, end]
    return {"ir": make_ir(stmts), "i": i, "stmts": stmts}


class TestWorklistStrategy:

    @pytest.mark.parametrize("text,expected", [
        ("fifo", WorklistStrategy.FIFO),
        ("LIFO", WorklistStrategy.LIFO),
        (" rpo ", WorklistStrategy.RPO),
    ])
    def test_from_string(self, text, expected):
        assert WorklistStrategy.from_string(text) is expected

    def test_unknown_strategy(self):
        with pytest.raises(ConfigurationError) as excinfo:
            WorklistStrategy.from_string("random")
        assert excinfo.value.code is ErrorCode.INVALID_OPTION


class TestSolver:

    def test_rejects_non_analysis(self):
        with pytest.raises(SolverError) as excinfo:
            WorklistSolver(object())
        assert excinfo.value.code is ErrorCode.NOT_AN_ANALYSIS

    def test_result_metadata(self, straight_line):
        cfg = build_cfg(straight_line["ir"])
        result = solve(ConstantPropagation(), cfg)
        assert isinstance(result, DataflowResult)
        assert result.direction is Direction.FORWARD
        assert result.converged
        assert result.iterations >= len(straight_line["stmts"])
        assert result.elapsed_seconds >= 0.0

    def test_iteration_bound(self, counting_loop, caplog):
        cfg = build_cfg(counting_loop["ir"])
        with caplog.at_level(logging.WARNING, logger="dataflow_dce"):
            result = solve(ConstantPropagation(), cfg, max_iterations=1)
        assert not result.converged
        assert result.iterations == 1
        assert "without reaching a fixpoint" in caplog.text

    @pytest.mark.parametrize("analysis_cls", [ConstantPropagation, LiveVariableAnalysis])
    def test_fixpoint_independent_of_order(self, counting_loop, analysis_cls):
        cfg = build_cfg(counting_loop["ir"])
        results = [
            solve(analysis_cls(), cfg, strategy=s) for s in ALL_STRATEGIES
        ]
        first = results[0]
        for other in results[1:]:
            for node in cfg.nodes:
                assert other.get_in_fact(node) == first.get_in_fact(node)
                assert other.get_out_fact(node) == first.get_out_fact(node)

    def test_fact_at(self, straight_line):
        cfg = build_cfg(straight_line["ir"])
        result = solve(ConstantPropagation(), cfg)
        s1 = straight_line["stmts"][1]
        assert result.fact_at(s1) is result.get_in_fact(s1)
        assert result.fact_at(s1, before=False) is result.get_out_fact(s1)


class TestConstantPropagation:

    def test_straight_line(self, straight_line):
        cfg = build_cfg(straight_line["ir"])
        result = solve(ConstantPropagation(), cfg)
        s0, s1, s2 = straight_line["stmts"]
        x, y = straight_line["x"], straight_line["y"]
        assert result.get_out_fact(s0).get(x) == const(1)
        assert result.get_out_fact(s1).get(y) == const(3)
        assert result.get_in_fact(s2).get(y) == const(3)

    def test_parameters_start_as_nac(self, diamond):
        cfg = build_cfg(diamond["ir"])
        result = solve(ConstantPropagation(), cfg)
        assert result.get_out_fact(cfg.entry).get(diamond["p"]) is NAC
        assert result.get_in_fact(diamond["stmts"][0]).get(diamond["p"]) is NAC

    def test_non_int_parameter_not_tracked(self):
        s = var_of("s", PrimitiveType.LONG)
        cfg = build_cfg(make_ir([ret(line=1)], params=[s]))
        fact = solve(ConstantPropagation(), cfg).get_out_fact(cfg.entry)
        assert s not in fact

    def test_merge_of_different_constants(self, diamond):
        cfg = build_cfg(diamond["ir"])
        result = solve(ConstantPropagation(), cfg)
        join = diamond["stmts"][4]
        assert result.get_in_fact(join).get(diamond["x"]) is NAC

    def test_merge_of_equal_constants(self):
        p, x = ivar("p"), ivar("x")
        join = ret(x, line=4)
        then_ = assign(x, lit(7), line=3)
        stmts = [
            if_goto(cond(ConditionOp.GT, p, lit(0)), then_, line=1),
            assign(x, lit(7), line=2),
            goto(join, line=2),
            then_,
            join,
        ]
        cfg = build_cfg(make_ir(stmts, params=[p]))
        result = solve(ConstantPropagation(), cfg)
        assert result.get_in_fact(join).get(x) == const(7)

    def test_loop_variable_becomes_nac(self, counting_loop):
        cfg = build_cfg(counting_loop["ir"])
        result = solve(ConstantPropagation(), cfg)
        head = counting_loop["stmts"][1]
        assert result.get_in_fact(head).get(counting_loop["i"]) is NAC

    def test_rebinding_overwrites(self):
        x = ivar("x")
        s0, s1 = assign(x, lit(1), line=1), assign(x, lit(2), line=2)
        cfg = build_cfg(make_ir([s0, s1, ret(x, line=3)]))
        result = solve(ConstantPropagation(), cfg)
        assert result.get_out_fact(s1).get(x) == const(2)

    def test_non_int_definition_ignored(self):
        d = var_of("d", PrimitiveType.DOUBLE)
        s0 = assign(d, lit(1), line=1)
        cfg = build_cfg(make_ir([s0, ret(line=2)]))
        result = solve(ConstantPropagation(), cfg)
        assert d not in result.get_out_fact(s0)

    def test_transfer_reports_change(self):
        x = ivar("x")
        s = assign(x, lit(4))
        cp = ConstantPropagation()
        out = CPFact()
        assert cp.transfer_node(s, CPFact(), out) is True
        assert cp.transfer_node(s, CPFact(), out) is False

    def test_transfer_is_monotone(self):
        x, y = ivar("x"), ivar("y")
        node = assign(y, add(x, lit(1)))
        samples = [
            CPFact(),
            CPFact({x: const(1)}),
            CPFact({x: const(2)}),
            CPFact({x: NAC}),
            CPFact({x: const(1), y: const(5)}),
        ]
        assert check_monotonicity(ConstantPropagation(), node, samples, cp_fact_leq)

    def test_meet_into(self):
        x, y = ivar("x"), ivar("y")
        target = CPFact({x: const(1)})
        ConstantPropagation().meet_into(CPFact({x: const(2), y: const(3)}), target)
        assert target.get(x) is NAC
        assert target.get(y) == const(3)


class TestLiveVariables:

    def test_straight_line(self, straight_line):
        cfg = build_cfg(straight_line["ir"])
        result = solve(LiveVariableAnalysis(), cfg)
        s0, s1, s2 = straight_line["stmts"]
        x, y = straight_line["x"], straight_line["y"]
        assert result.direction is Direction.BACKWARD
        assert set(result.get_out_fact(s0)) == {x}
        assert set(result.get_out_fact(s1)) == {y}
        assert set(result.get_in_fact(s0)) == set()
        assert set(result.get_out_fact(s2)) == set()

    def test_branches_union(self, diamond):
        cfg = build_cfg(diamond["ir"])
        result = solve(LiveVariableAnalysis(), cfg)
        s0 = diamond["stmts"][0]
        assert set(result.get_in_fact(s0)) == {diamond["p"]}
        assert set(result.get_out_fact(s0)) == set()

    def test_loop_keeps_variable_live(self, counting_loop):
        cfg = build_cfg(counting_loop["ir"])
        result = solve(LiveVariableAnalysis(), cfg)
        i = counting_loop["i"]
        s0, s1, s2, s3, _ = counting_loop["stmts"]
        assert i in result.get_out_fact(s0)
        assert i in result.get_out_fact(s2)
        assert i in result.get_in_fact(s3)
