"""
Greeting Properties

The one piece of configuration this service exists to serve.
"""

from pydantic import BaseModel, Field, ValidationError

from common.exceptions import ConfigError

from .config.environment import PropertyEnvironment

GREETING_KEY = "officialGreeting"
GREETING_BEAN = "greeting"


class GreetingProperties(BaseModel):
    """Properties bound from the `officialGreeting` key."""
    official_greeting: str = Field(..., min_length=1)


def bind_greeting(environment: PropertyEnvironment) -> GreetingProperties:
    """
    Bind greeting properties from the environment.

    Raises:
        PropertyNotFoundError: officialGreeting is not set anywhere
        PropertyResolutionError: its value references a missing property
        ConfigError: its value is empty
    """
    value = environment.get_property(GREETING_KEY)

    try:
        return GreetingProperties(official_greeting=value)
    except ValidationError as e:
        raise ConfigError(f"Invalid value for {GREETING_KEY}: must be a non-empty string", recoverable=False) from e
