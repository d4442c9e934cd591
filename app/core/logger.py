import logging
import sys

logger = logging.getLogger('main-logger')
logger.setLevel(logging.DEBUG)

handler = logging.StreamHandler(sys.stdout)
handler.setLevel(logging.DEBUG)
logger.addHandler(handler)


def log_scan(scanner_id, payload):
    logger.info('Scan from %s - Payload: %s', scanner_id or 'unknown', payload)
