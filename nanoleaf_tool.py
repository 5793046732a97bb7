#!/usr/bin/env python3
"""
Nanoleaf External Control Tool

Command-line helper for setting up and checking a Nanoleaf fixture
before it is handed to a streaming pipeline.

Commands:
- discover:   list fixtures found via mDNS
- pair:       request an API token (hold the power button first)
- identify:   flash a fixture
- properties: dump the resource tree or a subtree
- test:       stream a moving rainbow for a few seconds, then restore

License: MIT
"""

import argparse
import colorsys
import json
import logging
import sys
import time

from nanoleaf_ext import (
    ConfigError, DeviceConfig, NanoleafDevice, NanoleafError, load_config, save_config,
)

LOGGER = logging.getLogger("nanoleaf_tool")

VERSION = '1.0.0'


def rainbow(count: int, offset: float):
    """One fully saturated color per panel, shifted by offset (0-1)"""
    colors = []
    for i in range(count):
        r, g, b = colorsys.hsv_to_rgb((offset + i / max(count, 1)) % 1.0, 1.0, 1.0)
        colors.append((int(r * 255), int(g * 255), int(b * 255)))
    return colors


def cmd_discover(args) -> int:
    devices = NanoleafDevice.discover({'timeout': args.timeout})
    if not devices:
        print("No devices found.")
        return 0
    print(json.dumps([d.to_dict() for d in devices], indent=2))
    return 0


def cmd_pair(args) -> int:
    result = NanoleafDevice.add_authorization({'host': args.host, 'port': args.port, 'wait': args.wait})
    print(json.dumps(result))
    if args.config:
        config = DeviceConfig(host=args.host, port=args.port, token=result['auth_token'])
        save_config(args.config, config)
    return 0


def cmd_identify(args) -> int:
    ok = NanoleafDevice.identify({'host': args.host, 'port': args.port, 'token': args.token})
    return 0 if ok else 1


def cmd_properties(args) -> int:
    props = NanoleafDevice.get_properties({'host': args.host, 'port': args.port,
                                           'token': args.token, 'filter': args.filter})
    print(json.dumps(props, indent=2))
    return 0


def cmd_test(args) -> int:
    config = load_config(args.config)
    device = NanoleafDevice(config, on_config_changed=lambda c: save_config(args.config, c))

    if not device.switch_on():
        LOGGER.error(f"Could not start streaming: {device.last_error}")
        device.close()
        return 1

    frames = 0
    try:
        end = time.monotonic() + args.duration
        while time.monotonic() < end:
            if device.write(rainbow(device.led_count, frames / (args.fps * 4))) == 0:
                frames += 1
            time.sleep(1.0 / args.fps)
    except KeyboardInterrupt:
        LOGGER.info("Interrupted")
    finally:
        device.switch_off()

    LOGGER.info(f"Streamed {frames} frames to {device.led_count} panels")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Nanoleaf external control tool")
    parser.add_argument('-v', '--verbose', action='store_true', help="Debug logging")
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('discover', help="Find fixtures via mDNS")
    p.add_argument('--timeout', type=float, default=3.0)
    p.set_defaults(func=cmd_discover)

    p = sub.add_parser('pair', help="Request an API token")
    p.add_argument('host')
    p.add_argument('--port', type=int, default=16021)
    p.add_argument('--wait', type=float, default=30.0, help="Seconds to wait for pairing mode")
    p.add_argument('--config', help="Write a config file with the new token")
    p.set_defaults(func=cmd_pair)

    for name, func, help_text in (('identify', cmd_identify, "Flash a fixture"),
                                  ('properties', cmd_properties, "Dump resource tree")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument('host')
        p.add_argument('token')
        p.add_argument('--port', type=int, default=16021)
        if name == 'properties':
            p.add_argument('--filter', default='', help="Resource path, e.g. panelLayout/layout")
        p.set_defaults(func=func)

    p = sub.add_parser('test', help="Stream a test pattern")
    p.add_argument('config', help="JSON config file")
    p.add_argument('--duration', type=float, default=10.0)
    p.add_argument('--fps', type=float, default=25.0)
    p.set_defaults(func=cmd_test)

    return parser


def main(argv=None) -> int:
    """
    Main entry point.

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    LOGGER.debug(f"Nanoleaf tool v{VERSION}")

    try:
        return args.func(args)
    except ConfigError as e:
        LOGGER.error(f"Configuration error: {e}")
        return 2
    except NanoleafError as e:
        LOGGER.error(f"{type(e).__name__}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
