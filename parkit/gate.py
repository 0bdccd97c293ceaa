import logging
import ssl

from aiomqtt import Client

from parkit import config

logger = logging.getLogger(__name__)


def _tls_context():
    tls_context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
    tls_context.load_verify_locations(cafile=config.CA_CERT)
    tls_context.load_cert_chain(certfile=config.CLIENT_CERT, keyfile=config.CLIENT_KEY)
    return tls_context


async def open_gate(topic: str, message: str = "open"):
    """Tell the barrier on ``topic`` to open. Never raises."""
    if not config.MQTT_HOST:
        logger.debug(f"No MQTT broker configured, skipping '{message}' on '{topic}'")
        return False

    try:
        tls_context = None
        if config.MQTT_TLS_ENABLED:
            logger.info("TLS is enabled. Setting up SSL context.")
            tls_context = _tls_context()

        port = config.MQTT_TLS_PORT if config.MQTT_TLS_ENABLED else config.MQTT_PORT
        logger.info(f"Connecting to MQTT broker at {config.MQTT_HOST}:{port}")

        async with Client(
            hostname=config.MQTT_HOST,
            port=port,
            username=config.MQTT_USERNAME,
            password=config.MQTT_PASSWORD,
            tls_context=tls_context
        ) as client:
            await client.publish(topic, message.encode())
            logger.info(f"Successfully published '{message}' to '{topic}'")
    except Exception as e:
        logger.error(f"MQTT publish failed: {e}")
        return False
    return True
