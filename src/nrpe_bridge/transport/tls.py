"""Client TLS context for NRPE agents.

Stock NRPE daemons negotiate anonymous Diffie-Hellman without certificates,
so the client accepts any peer and allows legacy ciphers.
"""

from __future__ import annotations

import logging
import ssl

LEGACY_CIPHERS = "ALL:!MD5:@STRENGTH:@SECLEVEL=0"

logger = logging.getLogger(__name__)


def build_client_context(ciphers: str = LEGACY_CIPHERS) -> ssl.SSLContext:
    """Create an unverified client context with the NRPE cipher policy.

    Raises:
        ssl.SSLError: If the local OpenSSL rejects the cipher string
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    context.set_ciphers(ciphers)
    logger.debug("Built NRPE client TLS context", extra={"ciphers": ciphers})
    return context
