#!/usr/bin/env python3
"""
Run one execution request end to end against a live cluster.

    python examples/hello_request.py 7f8ebdabe3ed69b8d47b2cbc86e8668d171e1a0ced01610fd1ecc224db69767b "Hello, World!"

Environment:
    BONSOL_NETWORK      devnet (default), testnet, mainnet-beta or localnet
    BONSOL_RPC_URL      RPC override (ANCHOR_PROVIDER_URL also works)
    ANCHOR_WALLET       payer keypair file (default ~/.config/solana/id.json)
    HELLO_PROGRAM_ID    target program id
"""
import argparse
import logging
import os
import signal
import sys

from solders.pubkey import Pubkey

from bonsol_sdk import (
    CancellationToken, LoggingObserver, NetworkConfig, Phase, RequestSession, SessionConfig,
    WatchTimeout, load_keypair
)
from bonsol_sdk.ledger import SolanaRpcTransport

DEFAULT_PROGRAM_ID = "B1AJLQqKJPdaFM45ZojBQYGfGQ8v6ysCBVtAUsgwVvkb"


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Submit one Bonsol execution request and watch it")
    parser.add_argument("image_id", help="Image id as 64 hex characters")
    parser.add_argument("input_text", help="Input passed inline to the image")
    parser.add_argument("--network", default=None, help="Network name (overrides BONSOL_NETWORK)")
    parser.add_argument("--tip", type=int, default=12000)
    parser.add_argument("--expiry-offset", type=int, default=2000)
    parser.add_argument("--timeout", type=float, default=60.0, help="Seconds to watch for a claim")
    parser.add_argument("--poll-interval", type=float, default=1.0)
    parser.add_argument("--no-verify-image", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.network:
        network = NetworkConfig.from_network(args.network, rpc_url=os.environ.get("BONSOL_RPC_URL"))
    else:
        network = NetworkConfig.from_env()
    payer = load_keypair()
    program_id = Pubkey.from_string(os.environ.get("HELLO_PROGRAM_ID", DEFAULT_PROGRAM_ID))
    print(f"Payer pubkey: {payer.pubkey()}")

    config = SessionConfig(
        poll_interval=args.poll_interval,
        watch_timeout=args.timeout,
        verify_image=not args.no_verify_image
    )
    cancel = CancellationToken()
    signal.signal(signal.SIGINT, lambda *_: cancel.cancel())

    with SolanaRpcTransport(network.rpc_url) as ledger:
        session = RequestSession(
            ledger, payer, program_id,
            config=config,
            bonsol_program_id=network.bonsol_program_id,
            listeners=[LoggingObserver()]
        )
        outcome = session.run(
            args.image_id,
            args.input_text,
            expiry_offset=args.expiry_offset,
            tip=args.tip,
            cancel=cancel
        )

    if outcome.ok:
        result = outcome.value
        print(f"Transaction signature: {result.confirmation.signature}")
        print(f"View transaction: {network.tx_url(result.confirmation.signature)}")
        print(f"Final observation: {result.observation.model_dump(exclude={'data'})}")
        return 0

    error = outcome.error
    if error.phase == Phase.WATCH and error.confirmation is not None:
        print(f"Transaction signature: {error.confirmation.signature}")
        print(f"View transaction: {network.tx_url(error.confirmation.signature)}")
    if isinstance(error, WatchTimeout):
        print(f"No claim observed within {args.timeout}s; the request may still be claimed later")
        if error.observation is not None:
            print(f"Final observation: {error.observation.model_dump(exclude={'data'})}")
        return 2
    print(f"Error in phase {error.phase.value if error.phase else '?'}: {error}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
