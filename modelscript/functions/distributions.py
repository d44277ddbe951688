"""
Generative distributions.

Each distribution draws with the process-wide numpy Generator and evaluates its
log-density with scipy.stats. Draws are returned as python scalars (or lists) so
that they mix freely with literal values in expressions.
"""

import math
from typing import Any, List

import numpy as np
from scipy import stats

from modelscript.config import MAX_CONDITIONAL_TRIES
from modelscript.exceptions import ErrorCode, ModelScriptError
from modelscript.graph.generators import GenerativeDistribution, ParameterInfo


class Normal(GenerativeDistribution):
    name = "Normal"
    description = "The normal probability distribution with mean and standard deviation."
    signatures = (
        (
            ParameterInfo("mean", "the mean of the distribution.", shape="number"),
            ParameterInfo("sd", "the standard deviation of the distribution.", shape="number"),
        ),
    )

    def draw(self) -> float:
        return float(self.random.normal(self.param_value("mean"), self.param_value("sd")))

    def log_density(self, x: Any) -> float:
        return float(stats.norm.logpdf(x, loc=self.param_value("mean"), scale=self.param_value("sd")))


class LogNormal(GenerativeDistribution):
    name = "LogNormal"
    description = "The log-normal probability distribution."
    signatures = (
        (
            ParameterInfo("meanlog", "the mean of the distribution on the log scale.", shape="number"),
            ParameterInfo("sdlog", "the standard deviation of the distribution on the log scale.", shape="number"),
        ),
    )

    def draw(self) -> float:
        return float(self.random.lognormal(self.param_value("meanlog"), self.param_value("sdlog")))

    def log_density(self, x: Any) -> float:
        return float(stats.lognorm.logpdf(x, s=self.param_value("sdlog"), scale=math.exp(self.param_value("meanlog"))))


class Exp(GenerativeDistribution):
    name = "Exp"
    description = "The exponential probability distribution."
    signatures = ((ParameterInfo("rate", "the rate of an exponential distribution.", shape="number"),),)

    def _scale(self) -> float:
        return 1.0 / self.param_value("rate")

    def draw(self) -> float:
        return float(self.random.exponential(self._scale()))

    def log_density(self, x: Any) -> float:
        return float(stats.expon.logpdf(x, scale=self._scale()))


class Gamma(GenerativeDistribution):
    name = "Gamma"
    description = "The gamma probability distribution."
    signatures = (
        (
            ParameterInfo("shape", "the shape of the distribution.", shape="number"),
            ParameterInfo("scale", "the scale of the distribution.", shape="number"),
        ),
    )

    def draw(self) -> float:
        return float(self.random.gamma(self.param_value("shape"), self.param_value("scale")))

    def log_density(self, x: Any) -> float:
        return float(stats.gamma.logpdf(x, a=self.param_value("shape"), scale=self.param_value("scale")))


class Beta(GenerativeDistribution):
    name = "Beta"
    description = "The beta probability distribution on the unit interval."
    signatures = (
        (
            ParameterInfo("alpha", "the first shape parameter.", shape="number"),
            ParameterInfo("beta", "the second shape parameter.", shape="number"),
        ),
    )

    def draw(self) -> float:
        return float(self.random.beta(self.param_value("alpha"), self.param_value("beta")))

    def log_density(self, x: Any) -> float:
        return float(stats.beta.logpdf(x, self.param_value("alpha"), self.param_value("beta")))


class Uniform(GenerativeDistribution):
    name = "Uniform"
    description = "The continuous uniform distribution over [lower, upper)."
    signatures = (
        (
            ParameterInfo("lower", "the lower bound.", shape="number"),
            ParameterInfo("upper", "the upper bound.", shape="number"),
        ),
    )

    def draw(self) -> float:
        return float(self.random.uniform(self.param_value("lower"), self.param_value("upper")))

    def log_density(self, x: Any) -> float:
        lower, upper = self.param_value("lower"), self.param_value("upper")
        return float(stats.uniform.logpdf(x, loc=lower, scale=upper - lower))


class UniformDiscrete(GenerativeDistribution):
    name = "UniformDiscrete"
    description = "The discrete uniform distribution over the integers lower to upper inclusive."
    signatures = (
        (
            ParameterInfo("lower", "the lower bound (inclusive).", shape="integer"),
            ParameterInfo("upper", "the upper bound (inclusive).", shape="integer"),
        ),
    )

    def draw(self) -> int:
        return int(self.random.integers(self.param_value("lower"), self.param_value("upper"), endpoint=True))

    def log_density(self, x: Any) -> float:
        return float(stats.randint.logpmf(x, self.param_value("lower"), self.param_value("upper") + 1))


class Poisson(GenerativeDistribution):
    """
    The number of events when the expected number of events is lambda.
    `offset` is added to every draw; `min` and `max` condition the result, which is
    redrawn until it falls inside the bounds.
    """

    name = "Poisson"
    description = "The probability distribution of the number of events when the expected number of events is lambda."
    signatures = (
        (
            ParameterInfo("lambda", "the expected number of events.", shape="number"),
            ParameterInfo("offset", "a constant added to the result; 0 by default.", optional=True, shape="integer"),
            ParameterInfo("min", "the draw must be greater than or equal to this minimum.", optional=True, shape="integer"),
            ParameterInfo("max", "the draw must be less than or equal to this maximum.", optional=True, shape="integer"),
        ),
    )

    def _bounds(self):
        return self.param_value("offset", 0), self.param_value("min", 0), self.param_value("max", math.inf)

    def draw(self) -> int:
        offset, minimum, maximum = self._bounds()
        lam = self.param_value("lambda")
        for _ in range(MAX_CONDITIONAL_TRIES):
            drawn = int(self.random.poisson(lam)) + offset
            if minimum <= drawn <= maximum:
                return drawn
        raise ModelScriptError(
            ErrorCode.SAMPLING_FAILED,
            name=self.name,
            details=f"no draw fell inside [{minimum}, {maximum}] after {MAX_CONDITIONAL_TRIES} attempts.",
        )

    def log_density(self, x: Any) -> float:
        offset, minimum, maximum = self._bounds()
        if x < minimum or x > maximum:
            return -math.inf
        return float(stats.poisson.logpmf(x - offset, self.param_value("lambda")))


class Bernoulli(GenerativeDistribution):
    name = "Bernoulli"
    description = "A single trial that is true with probability p."
    signatures = ((ParameterInfo("p", "the probability of success.", shape="number"),),)

    def draw(self) -> bool:
        return bool(self.random.random() < self.param_value("p"))

    def log_density(self, x: Any) -> float:
        return float(stats.bernoulli.logpmf(int(x), self.param_value("p")))


class Dirichlet(GenerativeDistribution):
    """
    Dirichlet(conc=[...]) draws with the given concentration vector;
    Dirichlet(n=k, alpha=a) draws a k-dimensional simplex with symmetric concentration a.
    """

    name = "Dirichlet"
    description = "The dirichlet probability distribution over the simplex."
    signatures = (
        (ParameterInfo("conc", "the concentration parameters of a dirichlet distribution.", shape="vector"),),
        (
            ParameterInfo("n", "the dimension of the simplex.", shape="integer"),
            ParameterInfo("alpha", "the symmetric concentration parameter.", shape="number"),
        ),
    )

    def concentration(self) -> List[float]:
        if "conc" in self.parameter_names:
            return [float(c) for c in self.param_value("conc")]
        return [float(self.param_value("alpha"))] * int(self.param_value("n"))

    def draw(self) -> List[float]:
        return [float(x) for x in self.random.dirichlet(self.concentration())]

    def log_density(self, x: Any) -> float:
        return float(stats.dirichlet.logpdf(np.asarray(x, dtype=float), self.concentration()))


GENERATORS = [Normal, LogNormal, Exp, Gamma, Beta, Uniform, UniformDiscrete, Poisson, Bernoulli, Dirichlet]
