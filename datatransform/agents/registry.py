"""Agent registry mapping transformation categories to agent classes."""

from typing import Callable, TypeVar, overload

from datatransform.core.exceptions import SpecError
from datatransform.models.transform_spec import TransformMethod

A = TypeVar("A", bound=type)

_agent_registry: dict[TransformMethod, type] = {}


@overload
def register_agent(method: TransformMethod) -> Callable[[A], A]: ...


@overload
def register_agent(method: TransformMethod, agent_class: type) -> None: ...


def register_agent(
    method: TransformMethod,
    agent_class: type | None = None,
) -> Callable[[A], A] | None:
    """Register the agent class for a transformation category.

    Can be used as a decorator or called directly:

        # As decorator
        @register_agent(TransformMethod.RECODE)
        class RecodeAgent(TransformationAgent):
            ...

        # Direct call
        register_agent(TransformMethod.RECODE, RecodeAgent)

    Raises:
        SpecError: If the category already has an agent.
    """

    def _register(cls: A) -> A:
        if method in _agent_registry:
            raise SpecError(
                f"Agent for '{method.value}' is already registered",
                context={"method": method.value},
            )
        _agent_registry[method] = cls
        return cls

    if agent_class is not None:
        _register(agent_class)
        return None

    return _register


def get_agent_class(method: TransformMethod) -> type:
    """Return the agent class registered for a category.

    Raises:
        SpecError: If no agent is registered for the category.
    """
    agent_class = _agent_registry.get(method)
    if agent_class is None:
        available = ", ".join(m.value for m in list_agent_types()) or "(none)"
        raise SpecError(
            f"No agent registered for '{method.value}'",
            context={"method": method.value, "available_types": available},
        )
    return agent_class


def list_agent_types() -> list[TransformMethod]:
    """Registered categories, in execution order."""
    return [method for method in TransformMethod if method in _agent_registry]


def clear_registry() -> None:
    """Remove all registrations. Intended for tests."""
    _agent_registry.clear()
