import math

import pytest

from modelscript.exceptions import ErrorCode, ModelScriptError
from modelscript.functions.core import MathFunction, Range, binary_operator, unary_operator, MATH_FUNCTIONS
from modelscript.functions.distributions import Bernoulli, Dirichlet, Exp, Gamma, Normal, Poisson, Uniform, UniformDiscrete
from modelscript.functions.vector import ElementAt, ElementsAt, Length, Rep, Sum, array_of, concat_of
from modelscript.graph import RandomVariable, Value


def v(datum):
    return Value(None, datum)


# --- 1. Operators ---


@pytest.mark.parametrize(
    "function_name, a, b, expected",
    [
        ("add", 2, 3, 5),
        ("subtract", 2.5, 1.0, 1.5),
        ("multiply", [1, 2], 3, [3, 6]),
        ("divide", 1, [2, 4], [0.5, 0.25]),
        ("power", 2, 10, 1024),
        ("mod", 7, 3, 1),
        ("add", [1, 2], [10, 20], [11, 22]),
        ("add", [[1], [2]], 1, [[2], [3]]),
        ("__lt__", [1, 5], 3, [True, False]),
        ("__eq__", 2, 2, True),
        ("__and__", True, False, False),
        ("__or__", True, False, True),
        ("bitwise_and", 6, 3, 2),
        ("bitwise_or", 4, 1, 5),
        ("bitwise_xor", 6, 3, 5),
        ("left_shift", 1, 4, 16),
        ("right_shift", -16, 2, -4),
        ("zero_fill_right_shift", 16, 2, 4),
        ("zero_fill_right_shift", -1, 28, 15),
        ("left_shift", [1, 2], 1, [2, 4]),
    ],
)
def test_binary_operators(function_name, a, b, expected):
    assert binary_operator(function_name, a=v(a), b=v(b)).apply().value == expected


def test_unary_operators():
    assert unary_operator("negate", x=v([1, -2])).apply().value == [-1, 2]
    assert unary_operator("__not__", x=v(False)).apply().value is True


@pytest.mark.parametrize(
    "function_name, a, b",
    [
        pytest.param("add", [1, 2], [1, 2, 3], id="length_mismatch"),
        pytest.param("divide", 1.0, 0.0, id="division_by_zero"),
        pytest.param("subtract", "text", 1, id="unsupported_operands"),
    ],
)
def test_operator_failures_are_shape_mismatches(function_name, a, b):
    with pytest.raises(ModelScriptError) as excinfo:
        binary_operator(function_name, a=v(a), b=v(b)).apply()
    assert excinfo.value.code == ErrorCode.SHAPE_MISMATCH


def test_expression_node_is_deterministic():
    node = binary_operator("multiply", a=v(1.5), b=v(4))
    assert node.apply().value == node.apply().value == 6.0


def test_code_string_names_operands():
    x = Value("x", 2.0)
    node = binary_operator("add", a=x, b=v(1.0))
    assert node.code_string() == "x + 1.0"


# --- 2. Math functions ---


@pytest.mark.parametrize(
    "name, argument, expected",
    [
        ("exp", 0.0, 1.0),
        ("log", [1.0, math.e], [0.0, 1.0]),
        ("sqrt", 9.0, 3.0),
        ("abs", -2, 2),
        ("floor", 2.7, 2),
        ("logit", 0.5, 0.0),
        ("phi", 0.0, 0.5),
        ("logFact", 3.0, math.log(6.0)),
        ("signum", -3.0, -1.0),
        ("cLogLog", 1.0 - math.exp(-1.0), 0.0),
    ],
)
def test_math_functions(name, argument, expected):
    result = MathFunction(name, MATH_FUNCTIONS[name], x=v(argument)).apply().value
    assert result == pytest.approx(expected)


# --- 3. Ranges and arrays ---


@pytest.mark.parametrize(
    "start, end, expected",
    [
        pytest.param(0, 3, [0, 1, 2, 3], id="ascending"),
        pytest.param(3, 1, [3, 2, 1], id="descending"),
        pytest.param(2, 2, [2], id="single"),
    ],
)
def test_range_is_inclusive(start, end, expected):
    assert Range(start=v(start), end=v(end)).apply().value == expected


@pytest.mark.parametrize(
    "start, end",
    [
        pytest.param([0], 2, id="array_start"),
        pytest.param(1.7, 3, id="float_start"),
        pytest.param(0, 2.0, id="float_end"),
    ],
)
def test_range_bounds_must_be_integers(start, end):
    with pytest.raises(ModelScriptError) as excinfo:
        Range(start=v(start), end=v(end)).apply()
    assert excinfo.value.code == ErrorCode.SHAPE_MISMATCH


def test_array_function_collects_elements():
    x = Value("x", 2.0)
    array = array_of([x, v(3.0)])
    assert array.apply().value == [2.0, 3.0]
    assert array.code_string() == "[x, 3.0]"
    assert concat_of([v([0, 1]), v(3)]).apply().value == [0, 1, 3]


@pytest.mark.parametrize(
    "index, expected",
    [(0, 10), (2, 30), (-1, 30)],
)
def test_element_at(index, expected):
    assert ElementAt(array=v([10, 20, 30]), i=v(index)).apply().value == expected


@pytest.mark.parametrize("index", [3, -4])
def test_element_at_out_of_range(index):
    with pytest.raises(ModelScriptError) as excinfo:
        ElementAt(array=v([10, 20, 30]), i=v(index)).apply()
    assert excinfo.value.code == ErrorCode.SHAPE_MISMATCH


def test_elements_at():
    assert ElementsAt(array=v([10, 20, 30]), indices=v([2, 0])).apply().value == [30, 10]


def test_rep_sum_length():
    assert Rep(element=v(0.5), times=v(3)).apply().value == [0.5, 0.5, 0.5]
    assert Rep(element=v([1, 2]), times=v(2)).apply().value == [[1, 2], [1, 2]]
    assert Sum(array=v([1, 2, 3])).apply().value == 6
    assert Length(array=v([[1], [2]])).apply().value == 2


# --- 4. Distributions ---


def test_normal_draw_and_density():
    normal = Normal(mean=v(0.0), sd=v(1.0))
    draw = normal.sample("x")
    assert isinstance(draw, RandomVariable)
    assert isinstance(draw.value, float)
    assert normal.log_density(0.0) == pytest.approx(-0.5 * math.log(2 * math.pi))
    assert normal.density(0.0) == pytest.approx(1 / math.sqrt(2 * math.pi))


@pytest.mark.parametrize(
    "distribution, check",
    [
        pytest.param(Exp(rate=v(2.0)), lambda x: isinstance(x, float) and x > 0, id="exp"),
        pytest.param(Gamma(shape=v(2.0), scale=v(1.0)), lambda x: x > 0, id="gamma"),
        pytest.param(Uniform(lower=v(1.0), upper=v(2.0)), lambda x: 1.0 <= x < 2.0, id="uniform"),
        pytest.param(UniformDiscrete(lower=v(1), upper=v(3)), lambda x: isinstance(x, int) and 1 <= x <= 3, id="uniform_discrete"),
        pytest.param(Bernoulli(p=v(0.5)), lambda x: isinstance(x, bool), id="bernoulli"),
        pytest.param(Dirichlet(conc=v([1.0, 1.0, 1.0])), lambda x: len(x) == 3 and sum(x) == pytest.approx(1.0), id="dirichlet"),
    ],
)
def test_draws_are_in_support(distribution, check):
    for _ in range(20):
        assert check(distribution.sample().value)


def test_exp_density():
    assert Exp(rate=v(2.0)).log_density(0.5) == pytest.approx(math.log(2.0) - 1.0)


def test_poisson_honours_offset_and_bounds():
    bounded = Poisson(**{"lambda": v(1.0), "min": v(2), "max": v(3)})
    shifted = Poisson(**{"lambda": v(1.0), "offset": v(10)})
    for _ in range(20):
        assert bounded.draw() in (2, 3)
        assert shifted.draw() >= 10
    assert bounded.log_density(5) == -math.inf
    assert shifted.log_density(10) == pytest.approx(-1.0)


def test_poisson_gives_up_after_the_maximum_number_of_tries():
    impossible = Poisson(**{"lambda": v(0.0), "min": v(1)})
    with pytest.raises(ModelScriptError) as excinfo:
        impossible.sample("k")
    assert excinfo.value.code == ErrorCode.SAMPLING_FAILED


def test_sampling_checks_parameter_shapes():
    with pytest.raises(ModelScriptError) as excinfo:
        Normal(mean=v([0.0, 1.0]), sd=v(1.0)).sample("x")
    assert excinfo.value.code == ErrorCode.SHAPE_MISMATCH


def test_sampling_requires_every_required_parameter():
    with pytest.raises(ModelScriptError) as excinfo:
        Normal(mean=v(0.0)).sample("x")
    assert excinfo.value.code == ErrorCode.SHAPE_MISMATCH


@pytest.mark.parametrize(
    "distribution",
    [
        pytest.param(Exp(rate=v(0.0)), id="zero_rate"),
        pytest.param(Normal(mean=v(0.0), sd=v(-1.0)), id="negative_sd"),
        pytest.param(Poisson(**{"lambda": v(-1.0)}), id="negative_lambda"),
        pytest.param(Gamma(shape=v(-2.0), scale=v(1.0)), id="negative_shape"),
    ],
)
def test_invalid_parameters_fail_the_draw(distribution):
    with pytest.raises(ModelScriptError) as excinfo:
        distribution.sample("x")
    assert excinfo.value.code == ErrorCode.SAMPLING_FAILED
    assert distribution.name in str(excinfo.value)
