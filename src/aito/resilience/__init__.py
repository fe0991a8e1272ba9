"""Resilience module - Circuit breakers for external dependencies."""

from .circuit_breaker import (
	DEFAULT_OPTIONS,
	GITHUB_OPTIONS,
	LLM_PROVIDER_OPTIONS,
	CircuitBreaker,
	CircuitBreakerOptions,
	CircuitBreakerRegistry,
	CircuitOpenError,
	CircuitState,
	default_registry,
	is_circuit_available,
	is_circuit_open,
)

__all__ = [
	"CircuitBreaker",
	"CircuitBreakerOptions",
	"CircuitBreakerRegistry",
	"CircuitOpenError",
	"CircuitState",
	"DEFAULT_OPTIONS",
	"GITHUB_OPTIONS",
	"LLM_PROVIDER_OPTIONS",
	"default_registry",
	"is_circuit_available",
	"is_circuit_open",
]
