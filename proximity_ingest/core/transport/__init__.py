"""Transport layer - Recepción MQTT."""

from .mqtt_client import BrokerConnection, BrokerEndpoint, BrokerMessage

__all__ = ["BrokerConnection", "BrokerEndpoint", "BrokerMessage"]
