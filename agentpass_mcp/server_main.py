import asyncio
import json
import logging
import os
import sys
from typing import List

from agentpass_mcp.bridge import AgentPass, BridgeOptions, EndpointDescriptor

logging.basicConfig(stream=sys.stderr, level=logging.INFO, format='[%(levelname)s] %(message)s')


def load_endpoints(path: str) -> List[EndpointDescriptor]:
    """Load endpoint descriptors from a JSON file

    The file holds either a list of endpoint objects or an object with an
    ``endpoints`` list.

    Args:
        path: Path to the JSON file

    Returns:
        Endpoint descriptors in file order

    Raises:
        KeyError: If an endpoint is missing ``method`` or ``path``
        ValueError: If the file is not valid JSON or a value is invalid
    """
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    if isinstance(data, dict):
        data = data.get("endpoints", [])
    return [EndpointDescriptor.from_dict(item) for item in data]


def options_from_env() -> BridgeOptions:
    return BridgeOptions(
        name=os.getenv("AGENTPASS_NAME", "agentpass-mcp-server"),
        transport=os.getenv("AGENTPASS_TRANSPORT", "stdio"),
        host=os.getenv("HOST", "localhost"),
        port=int(os.getenv("PORT", 3000)),
        cors=os.getenv("AGENTPASS_CORS", "true").lower() not in ("0", "false", "no"),
        base_url=os.getenv("AGENTPASS_BASE_URL", "http://localhost:3000"),
    )


async def serve(agentpass: AgentPass, options: BridgeOptions) -> None:
    server = agentpass.generate_mcp_server(options)
    await server.start()
    try:
        await server.wait()
    finally:
        await server.stop()


def main() -> None:
    """Serve the endpoints listed in $AGENTPASS_ENDPOINTS"""
    endpoints_file = os.getenv("AGENTPASS_ENDPOINTS")
    if not endpoints_file:
        logging.error("[AgentPass] AGENTPASS_ENDPOINTS must point to a JSON file of endpoint descriptors")
        sys.exit(2)

    agentpass = AgentPass(name=os.getenv("AGENTPASS_NAME", "agentpass-mcp-server"))
    agentpass.define_endpoints(load_endpoints(endpoints_file))
    options = options_from_env()
    logging.info(f"[AgentPass] Loaded {len(agentpass.get_endpoints())} endpoints from {endpoints_file}")

    try:
        asyncio.run(serve(agentpass, options))
    except KeyboardInterrupt:
        logging.info("[AgentPass] Interrupted, shutting down")


if __name__ == "__main__":
    main()

__all__ = [
    "load_endpoints",
    "options_from_env",
    "serve",
    "main",
]
