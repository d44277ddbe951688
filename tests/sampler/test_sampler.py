import time

import pytest

from modelscript.exceptions import ErrorCode, InternalInconsistencyError, ModelScriptError
from modelscript.functions.core import Identity
from modelscript.functions.distributions import Normal
from modelscript.generators.random_source import set_seed
from modelscript.graph import GraphicalModel, RandomVariable, Value
from modelscript.interpreter import Interpreter
from modelscript.sampler import AncestralSampler


def sampler_for(interpreter: Interpreter) -> AncestralSampler:
    return AncestralSampler(interpreter.model)


# --- 1. Forward sampling ---


def test_resampling_keeps_the_arithmetic_relationship(interpret):
    interpreter = interpret("n = 5; theta ~ Exp(rate=2.0); y = theta + 1.0;")
    model = interpreter.model
    old_n, old_theta, old_y = (model.get_value(name) for name in ("n", "theta", "y"))

    overlay = sampler_for(interpreter).sample()

    theta, y = model.get_value("theta"), model.get_value("y")
    assert set(overlay) == {"theta", "y"}
    assert theta is not old_theta and y is not old_y
    assert theta.value != old_theta.value
    assert y.value == theta.value + 1.0
    assert isinstance(theta, RandomVariable) and theta.id == "theta"
    assert model.get_value("n") is old_n


def test_converging_paths_share_one_draw(interpret):
    interpreter = interpret("mu ~ Normal(mean=0.0, sd=1.0); a = mu + 1.0; b = mu * 2.0;")
    model = interpreter.model
    assert [s.id for s in model.sinks()] == ["a", "b"]

    for _ in range(5):
        sampler_for(interpreter).sample()
        mu, a, b = (model.get_value(name) for name in ("mu", "a", "b"))
        assert a.generator.get_param("a") is mu
        assert b.generator.get_param("a") is mu
        assert a.value == mu.value + 1.0
        assert b.value == mu.value * 2.0


def test_random_intermediates_are_redrawn_once_per_pass(interpret):
    interpreter = interpret("s ~ Exp(rate=1.0); x ~ Normal(mean=0.0, sd=s); y = x + s;")
    model = interpreter.model

    sampler_for(interpreter).sample()
    s, x, y = (model.get_value(name) for name in ("s", "x", "y"))
    assert x.generator.get_param("sd") is s
    assert y.value == x.value + s.value


def test_non_random_values_are_reused_unchanged(interpret):
    interpreter = interpret("data { k = 3; } model { c = k * 2; mu ~ Normal(mean=c, sd=1.0); }")
    model = interpreter.model
    k, c = model.get_value("k", "data"), model.get_value("c")

    overlay = sampler_for(interpreter).sample()

    assert set(overlay) == {"mu"}
    assert model.get_value("k", "data") is k
    assert model.get_value("c") is c
    assert model.get_value("mu").generator.get_param("mean") is c


def test_model_without_random_values_is_left_alone(interpret):
    interpreter = interpret("x = 2; y = x * 3;")
    y = interpreter.model.get_value("y")
    assert sampler_for(interpreter).sample() == {}
    assert interpreter.model.get_value("y") is y


def test_indexed_values_follow_their_sources(interpret):
    interpreter = interpret("mu ~ Normal(mean=0.0, sd=1.0); x[0] = mu; x[2] = 5.0; total = x[0] + 1.0;")
    model = interpreter.model

    sampler_for(interpreter).sample()
    mu, x, total = (model.get_value(name) for name in ("mu", "x", "total"))
    assert x.value == [mu.value, None, 5.0]
    assert x.provenance[0][0] is mu
    assert total.value == mu.value + 1.0


def test_aliases_follow_their_source(interpret):
    interpreter = interpret("theta ~ Exp(rate=1.0); t = theta;")
    sampler_for(interpreter).sample()
    assert interpreter.model.get_value("t").value == interpreter.model.get_value("theta").value


def test_superseded_bindings_are_not_confused_with_the_current_one(interpret):
    interpreter = interpret("x ~ Normal(mean=0.0, sd=1.0); y = x + 1.0; x ~ Normal(mean=100.0, sd=1.0);")
    model = interpreter.model

    sampler_for(interpreter).sample()
    y, x = model.get_value("y"), model.get_value("x")
    assert y.value < 50.0
    assert x.value > 50.0
    assert y.generator.get_param("a") is not x


def test_seed_makes_passes_reproducible(interpret):
    results = []
    for _ in range(2):
        set_seed(7)
        interpreter = interpret("mu ~ Normal(mean=0.0, sd=1.0); y = mu * 2.0;")
        sampler_for(interpreter).sample()
        results.append(interpreter.model.get_value("y").value)
    assert results[0] == results[1]


def test_sample_many_records_every_pass(interpret):
    interpreter = interpret("p ~ Beta(alpha=2.0, beta=2.0); q = 1.0 - p;")
    draws = sampler_for(interpreter).sample_many(4)
    assert len(draws) == 4
    assert all(d["q"] == pytest.approx(1.0 - d["p"]) for d in draws)


# --- 2. Failures and atomicity ---


def test_random_variable_without_a_generator_fails_atomically():
    model = GraphicalModel()
    good = Normal(mean=Value(None, 0.0), sd=Value(None, 1.0)).sample("good")
    model.put(good)
    orphan = RandomVariable("orphan", 1.0, None)
    model.put(orphan)
    alias = Identity(x=orphan).apply()
    alias.id = "alias"
    model.put(alias)

    with pytest.raises(ModelScriptError) as excinfo:
        AncestralSampler(model).sample()
    assert excinfo.value.code == ErrorCode.MISSING_GENERATOR
    assert model.get_value("good") is good
    assert model.get_value("alias") is alias


def test_cycle_is_an_internal_inconsistency():
    model = GraphicalModel()
    normal = Normal(sd=Value(None, 1.0))
    r = RandomVariable("r", 0.0, normal)
    normal.set_input("mean", r)
    model.put(r)

    with pytest.raises(InternalInconsistencyError):
        AncestralSampler(model).sample(sinks=[r])
    assert model.get_value("r") is r


def test_listeners_are_notified_after_commit(interpret):
    interpreter = interpret("mu ~ Normal(mean=0.0, sd=1.0);")
    model = interpreter.model
    seen = []
    model.add_listener(lambda: seen.append(model.get_value("mu").value))

    sampler_for(interpreter).sample()
    assert seen == [model.get_value("mu").value]


def test_sampling_does_not_add_or_remove_ids(interpret):
    interpreter = interpret("a ~ Exp(rate=1.0); b = [a, a]; c = b[0] * 2.0;")
    before = list(interpreter.model.model_scope.values)
    sampler_for(interpreter).sample()
    assert list(interpreter.model.model_scope.values) == before
    b = interpreter.model.get_value("b")
    assert b.value == [interpreter.model.get_value("a").value] * 2


@pytest.mark.parametrize("head", ["c0 = 1.0;", "c0 ~ Exp(rate=1.0);"])
def test_deep_shared_chains_sample_in_linear_time(interpret, head):
    depth = 40
    script = head + "".join(f"c{k} = c{k - 1} + c{k - 1};" for k in range(1, depth + 1))
    interpreter = interpret(script)
    model = interpreter.model

    start = time.perf_counter()
    sampler_for(interpreter).sample()
    assert time.perf_counter() - start < 5.0

    top = model.get_value(f"c{depth}")
    assert top.value == pytest.approx(model.get_value("c0").value * 2**depth)
