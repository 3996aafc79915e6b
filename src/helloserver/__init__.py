"""
=============================================================================
HELLOSERVER - a minimal HTTP greeting service
=============================================================================

One route, one answer:

    $ python -m helloserver -host localhost -port 8080
    $ curl http://localhost:8080/hello
    hello

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    helloserver/
    ├── __init__.py          # Package exports
    ├── __main__.py          # CLI entry point (python -m helloserver)
    ├── service.py           # Service: lifecycle and request loop
    ├── config.py            # ServerConfig dataclass
    ├── core/                # Sockets and threads
    │   ├── socket_server.py # Listening socket, accept loop
    │   ├── connection.py    # Per-client reads and writes
    │   └── workers.py       # Worker threads
    ├── http/                # Protocol
    │   ├── request.py       # Request parsing
    │   ├── response.py      # Response building
    │   ├── router.py        # Path → handler
    │   └── status_codes.py  # HTTPStatus
    ├── middleware/          # Around-the-router code
    │   ├── base.py          # Middleware type, chain()
    │   └── logging.py       # Access log
    └── handlers/
        └── hello.py         # The greeting

=============================================================================
EMBEDDING
=============================================================================

    from helloserver import new_service

    service = new_service("127.0.0.1", 0)
    threading.Thread(target=service.start, daemon=True).start()
    service.wait_until_ready(5)
    host, port = service.bound_address
    ...
    service.stop()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .service import Service, new_service

__all__ = ["Service", "ServerConfig", "new_service", "__version__"]
