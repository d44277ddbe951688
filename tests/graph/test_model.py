import pytest

from modelscript.exceptions import ErrorCode, ModelScriptError
from modelscript.functions.core import binary_operator
from modelscript.graph import GraphicalModel, Scope, Value


def _bind(model, id, generator, context="model"):
    value = generator.apply()
    value.id = id
    model.put(value, context)
    return value


def test_rebinding_an_id_replaces_the_prior_binding():
    scope = Scope("model")
    scope.put(Value("x", 1))
    scope.put(Value("y", 2))
    scope.put(Value("x", 3))
    assert len(scope) == 2
    assert scope.get("x").value == 3
    assert [v.id for v in scope] == ["x", "y"]


def test_scope_rejects_anonymous_values():
    with pytest.raises(ValueError):
        Scope("model").put(Value(None, 1))


def test_model_scope_reads_data_but_not_the_reverse():
    model = GraphicalModel()
    model.put(Value("n", 3), "data")
    model.put(Value("m", 4), "model")

    assert model.get_value("n", "model").value == 3
    assert model.get_value("m", "data") is None
    with pytest.raises(ModelScriptError) as excinfo:
        model.lookup("m", "data")
    assert excinfo.value.code == ErrorCode.UNDECLARED_IDENTIFIER


def test_unknown_scope_is_rejected():
    with pytest.raises(ValueError):
        GraphicalModel().scope("posterior")


def test_sinks_are_the_unconsumed_model_values():
    model = GraphicalModel()
    a = Value("a", 1.0)
    model.put(a)
    b = _bind(model, "b", binary_operator("add", a=a, b=Value(None, 1.0)))
    c = _bind(model, "c", binary_operator("multiply", a=a, b=Value(None, 2.0)))

    assert model.sinks("model") == [b, c]


def test_upstream_and_downstream_queries():
    model = GraphicalModel()
    a = Value("a", 1.0)
    model.put(a)
    b = _bind(model, "b", binary_operator("add", a=a, b=Value(None, 1.0)))

    assert model.upstream(b) == [b.generator]
    assert model.downstream(a) == [b.generator]
    assert model.downstream(b.generator) == [b]


def test_listeners_are_notified_on_remove_and_clear():
    model = GraphicalModel()
    calls = []
    model.add_listener(lambda: calls.append(1))
    model.put(Value("a", 1))

    assert model.remove("a").id == "a"
    assert model.remove("a") is None
    model.clear()
    assert len(calls) == 2

    model.remove_listener(model._listeners[0])
    model.clear()
    assert len(calls) == 2


def test_commit_rebinds_several_ids():
    model = GraphicalModel()
    model.put(Value("a", 1))
    model.put(Value("b", 2))
    model.commit({"a": Value("a", 10), "b": Value("b", 20)})
    assert [v.value for v in model.model_scope] == [10, 20]
