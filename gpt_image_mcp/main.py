"""MCP entry point exposing the GPT-Image-1 generation tools."""

import argparse
import json
import logging
import signal
import sys
from typing import Annotated, List, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import Field
from starlette.concurrency import run_in_threadpool

from . import __version__
from .aiservices.imagegenerationclient import ImageGenerationError
from .config import Settings, get_settings
from .schemas import (
    DEFAULT_QUALITY,
    DEFAULT_SIZE,
    MAX_IMAGES,
    MIN_IMAGES,
    GenerationRequest,
    ImageQuality,
    ImageSize,
    ToolResult,
    VariationRequest,
)
from .service import ImageGenerationService, build_image_client, get_image_service

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

PromptArg = Annotated[str, Field(description="The text prompt describing what you want to see")]
SizeArg = Annotated[ImageSize, Field(description="The size of the generated image")]
CountArg = Annotated[
    int,
    Field(ge=MIN_IMAGES, le=MAX_IMAGES, description="Number of images to generate (1-4)"),
]
StyleArg = Annotated[Optional[str], Field(description="Optional style guidance for the image generation")]
QualityArg = Annotated[ImageQuality, Field(description="The quality of the image that will be generated")]


def configure_logging(settings: Settings) -> None:
    """Send diagnostics to stderr; stdout carries the stdio transport."""
    numeric_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)


def _to_tool_output(result: ToolResult) -> str:
    if result.is_error:
        raise ToolError(result.text)
    return result.text


def create_server(service: ImageGenerationService, settings: Optional[Settings] = None) -> FastMCP:
    """Build a FastMCP server whose tools delegate to ``service``."""
    settings = settings or get_settings()
    server = FastMCP(
        settings.server_name,
        instructions="Generate images with OpenAI's GPT-Image-1 model and save them locally.",
        host=settings.host,
        port=settings.port,
    )

    @server.tool(
        name="gpt_image_1_generate",
        description="Generate high-quality images using OpenAI's GPT-Image-1 model",
    )
    async def gpt_image_1_generate(
        prompt: PromptArg,
        size: SizeArg = DEFAULT_SIZE,
        n: CountArg = 1,
    ) -> str:
        request = GenerationRequest(prompt=prompt, size=size, n=n)
        result = await run_in_threadpool(service.generate_images, request)
        return _to_tool_output(result)

    @server.tool(
        name="gpt_image_1_generate_with_variations",
        description=(
            "Generate images using GPT-Image-1 with optional style guidance "
            "and a quality setting"
        ),
    )
    async def gpt_image_1_generate_with_variations(
        prompt: PromptArg,
        size: SizeArg = DEFAULT_SIZE,
        n: CountArg = 1,
        style: StyleArg = None,
        quality: QualityArg = DEFAULT_QUALITY,
    ) -> str:
        request = VariationRequest(prompt=prompt, size=size, n=n, style=style, quality=quality)
        result = await run_in_threadpool(service.generate_images_with_variations, request)
        return _to_tool_output(result)

    return server


# ----------------------------------------------------------------------
# Command line
# ----------------------------------------------------------------------
def check_connection(settings: Settings) -> int:
    """Verify the API key and list the image models it can reach."""
    client = build_image_client(settings)
    if client is None:
        print("OPENAI_API_KEY environment variable not set")
        print("Please set your OpenAI API key: export OPENAI_API_KEY=your_api_key_here")
        return 1

    try:
        models = client.list_image_models()
    except ImageGenerationError as exc:
        print(f"Error testing OpenAI integration: {exc}")
        if exc.status_code == 401:
            print("Authentication failed - please check your API key")
        elif exc.status_code == 429:
            print("Rate limit exceeded - please try again later")
        else:
            print("Please check your internet connection and API key")
        return 1

    print("API connection successful")
    print(f"Found {len(models)} image generation models:")
    for model_id in models:
        print(f"  - {model_id}")

    if settings.image_model_id in models:
        print(f"{settings.image_model_id} model is available!")
    else:
        print(f"{settings.image_model_id} model not found in available models")
        print("   This might be due to API access limitations")
    return 0


def client_config(settings: Settings) -> dict:
    """Return the ``mcpServers`` entry an MCP host needs to launch this server."""
    return {
        "mcpServers": {
            settings.server_name: {
                "command": sys.executable,
                "args": ["-m", "gpt_image_mcp"],
                "env": {
                    "OPENAI_API_KEY": "your_openai_api_key_here",
                },
            }
        }
    }


def _handle_sigterm(signum, frame) -> None:  # pragma: no cover - process level
    logger.info("Received SIGTERM, shutting down gracefully...")
    sys.exit(0)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="gpt-image-mcp",
        description="MCP server for image generation with OpenAI GPT-Image-1.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default=None,
        help="Transport to serve on (defaults to the configured transport, stdio).",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--check",
        action="store_true",
        help="Test the OpenAI API key and list the available image models, then exit.",
    )
    mode.add_argument(
        "--print-config",
        action="store_true",
        help="Print the MCP client configuration for this server, then exit.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()

    if args.print_config:
        print(json.dumps(client_config(settings), indent=2))
        return 0

    configure_logging(settings)

    if args.check:
        return check_connection(settings)

    server = create_server(get_image_service(), settings)
    transport = args.transport or settings.transport

    signal.signal(signal.SIGTERM, _handle_sigterm)
    logger.info("GPT-Image-1 MCP server running on %s", transport)
    try:
        server.run(transport=transport)
    except KeyboardInterrupt:
        logger.info("Received SIGINT, shutting down gracefully...")
    return 0


__all__ = ["create_server", "main"]


if __name__ == "__main__":  # pragma: no cover - convenience entry point
    sys.exit(main())
