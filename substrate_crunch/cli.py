#!/usr/bin/env python3
"""
substrate-crunch CLI Interface
"""

import asyncio
import logging
import sys

import click

from . import __version__
from .config import (
    DEFAULT_HEALTHCHECK_HOST,
    DEFAULT_HEALTHCHECK_PORT,
    DEFAULT_SUBSTRATE_WS_URL,
    CrunchConfig,
    parse_stashes,
)
from .crunch import run
from .recovery import RunMode


def setup_logging(level=logging.INFO):
    """Set up logging configuration to stderr only"""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        stream=sys.stderr
    )
    # Frame level chatter from the websocket library
    logging.getLogger("websockets").setLevel(max(level, logging.INFO))


@click.command()
@click.version_option(__version__, prog_name="substrate-crunch")
@click.option('--mode', type=click.Choice([m.value for m in RunMode]), required=True,
              help='Run mode: subscribe (crunch on every new era), flakes (crunch every --interval seconds) or view (inspect once)')
@click.option('--substrate-ws-url', envvar='CRUNCH_SUBSTRATE_WS_URL', default=DEFAULT_SUBSTRATE_WS_URL,
              show_default=True, help='Substrate node WebSocket RPC url')
@click.option('--stashes', envvar='CRUNCH_STASHES', default='', help='Comma separated stash addresses')
@click.option('--stashes-url', envvar='CRUNCH_STASHES_URL', default='',
              help='Url of a newline separated stash list loaded at startup')
@click.option('--interval', envvar='CRUNCH_INTERVAL', type=click.IntRange(min=1), default=21600,
              show_default=True, help='Seconds between crunches in flakes mode')
@click.option('--error-interval', envvar='CRUNCH_ERROR_INTERVAL', type=click.IntRange(min=1), default=2,
              show_default=True, help='Backoff base: after the n-th failure wait 60 * base^n seconds')
@click.option('--max-backoff', envvar='CRUNCH_MAX_BACKOFF', type=click.IntRange(min=60), default=21600,
              show_default=True, help='Upper bound in seconds of a backoff wait')
@click.option('--era-wait', envvar='CRUNCH_ERA_WAIT', type=click.IntRange(min=0), default=0,
              show_default=True, help='Maximum random delay in seconds before crunching a new era')
@click.option('--onet-api-enabled', envvar='CRUNCH_ONET_API_ENABLED', is_flag=True,
              help='Fetch ONE-T validator grades')
@click.option('--onet-api-url', envvar='CRUNCH_ONET_API_URL', default='',
              help='ONE-T endpoint (default derived from the chain name)')
@click.option('--onet-api-key', envvar='CRUNCH_ONET_API_KEY', default='', help='ONE-T API key')
@click.option('--onet-number-last-sessions', envvar='CRUNCH_ONET_NUMBER_LAST_SESSIONS',
              type=click.IntRange(min=1), default=6, show_default=True,
              help='Sessions considered by the ONE-T grade')
@click.option('--notify-url', envvar='CRUNCH_NOTIFY_URL', default='', help='Webhook receiving crunch summaries')
@click.option('--healthcheck-port', envvar='CRUNCH_HEALTHCHECK_PORT', type=click.IntRange(min=0, max=65535),
              default=DEFAULT_HEALTHCHECK_PORT, show_default=True, help='Loopback port of the liveness probe')
@click.option('--timeout', envvar='CRUNCH_HTTP_TIMEOUT', type=int, default=10, show_default=True,
              help='HTTP request timeout in seconds')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--quiet', is_flag=True, help='Only log errors')
def cli(mode, substrate_ws_url, stashes, stashes_url, interval, error_interval, max_backoff, era_wait,
        onet_api_enabled, onet_api_url, onet_api_key, onet_number_last_sessions, notify_url,
        healthcheck_port, timeout, debug, quiet):
    """substrate-crunch: claim staking rewards for your stashes, unattended"""

    # Set up logging
    if debug:
        setup_logging(logging.DEBUG)
    elif quiet:
        setup_logging(logging.ERROR)
    else:
        setup_logging(logging.INFO)

    config = CrunchConfig(
        substrate_ws_url=substrate_ws_url,
        stashes=parse_stashes(stashes),
        stashes_url=stashes_url,
        interval=interval,
        error_interval=error_interval,
        max_backoff=max_backoff,
        era_wait=era_wait,
        onet_api_enabled=onet_api_enabled,
        onet_api_url=onet_api_url,
        onet_api_key=onet_api_key,
        onet_number_last_sessions=onet_number_last_sessions,
        notify_url=notify_url,
        healthcheck_host=DEFAULT_HEALTHCHECK_HOST,
        healthcheck_port=healthcheck_port,
        http_timeout=timeout,
    )

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        ok = loop.run_until_complete(run(config, RunMode(mode)))
    except KeyboardInterrupt:
        click.echo("Interrupted", err=True)
        sys.exit(130)
    except Exception as e:
        click.echo(f"Crunch failed: {e}", err=True)
        sys.exit(1)
    finally:
        loop.close()

    if not ok:
        sys.exit(1)


if __name__ == '__main__':
    cli()
