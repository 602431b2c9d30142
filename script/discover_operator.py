#!/usr/bin/env python3
import json
import logging

from pygments import highlight
from pygments.formatters.terminal import TerminalFormatter
from pygments.lexers.data import JsonLexer

from mobileconnect.configure import create_from_config_file
from mobileconnect.interface import MobileConnectInterface

if __name__ == '__main__':
    import argparse

    parser = argparse.ArgumentParser()
    parser.add_argument('-c', "--config", required=True)
    parser.add_argument('-k', "--insecure", action='store_true')
    parser.add_argument('-f', "--format", action='store_true')
    parser.add_argument('-d', "--debug", action='store_true')
    parser.add_argument('-m', "--msisdn")
    parser.add_argument("--mcc")
    parser.add_argument("--mnc")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    config = create_from_config_file(args.config)
    if args.insecure:
        config.httpc_params["verify"] = False

    interface = MobileConnectInterface(config)
    status = interface.attempt_discovery(msisdn=args.msisdn, mcc=args.mcc, mnc=args.mnc)

    json_str = json.dumps(status.to_dict(), indent=2)
    print(20 * "=" + f" Discovery status: {status.response_type} " + 20 * "=")
    if args.format:
        print(highlight(json_str, JsonLexer(), TerminalFormatter()))
    else:
        print(json_str)
