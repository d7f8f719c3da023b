import argparse
import signal
import sys
import threading

from pydantic import ValidationError

from imageclone.compute.kubernetes import WorkloadKey, WorkloadKind
from imageclone.core import configure_logging, get_logger
from imageclone.core.exceptions import BaseError
from imageclone.image import destination, parse, parse_registry

from .manifest import MANIFEST_FILE, MirrorManifest

logger = get_logger(__name__)

KINDS = {
    "deployment": WorkloadKind.DEPLOYMENT,
    "daemonset": WorkloadKind.DAEMON_SET,
}


def load_manifest(args: argparse.Namespace) -> MirrorManifest:
    return MirrorManifest.parse(
        args.manifest,
        backup_registry=args.backup_registry,
        pod_namespace=args.pod_namespace,
        workers=getattr(args, "workers", None),
    )


def run(manifest: MirrorManifest) -> None:
    """
    Run the controller until SIGINT or SIGTERM.
    """
    stop_event = threading.Event()

    def handle_signal(signum, frame):
        logger.info("Received signal %s, shutting down", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)
    controller = manifest.build_controller()
    controller.run(stop_event=stop_event)


def reconcile(manifest: MirrorManifest, kind: str, namespace: str, name: str):
    """
    Run a single reconciliation attempt.
    """
    key = WorkloadKey(kind=KINDS[kind.lower()], namespace=namespace, name=name)
    if not manifest.namespace_filter().eligible(namespace):
        logger.info("Namespace %s is ignored", namespace)
        return None
    return manifest.build_reconciler().reconcile(key)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="image-clone",
        description="Mirror workload images into a backup registry",
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO", help="Logging level"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    run_parser = subparsers.add_parser("run", help="Run the controller")
    reconcile_parser = subparsers.add_parser(
        "reconcile", help="Reconcile a single workload"
    )
    destination_parser = subparsers.add_parser(
        "destination", help="Print the mirrored reference of an image"
    )
    manifest_arguments = [
        ("--manifest", str, MANIFEST_FILE, "Manifest filename"),
        ("--backup-registry", str, None, "Backup registry (host[:port])"),
        ("--pod-namespace", str, None, "Namespace the controller runs in"),
    ]
    for arg in manifest_arguments:
        run_parser.add_argument(
            arg[0], type=arg[1], default=arg[2], help=arg[3]
        )
        reconcile_parser.add_argument(
            arg[0], type=arg[1], default=arg[2], help=arg[3]
        )
    run_parser.add_argument(
        "--workers", type=int, default=None, help="Concurrent workers"
    )
    reconcile_parser.add_argument(
        "kind", type=str.lower, choices=sorted(KINDS), help="Workload kind"
    )
    reconcile_parser.add_argument("namespace", type=str, help="Namespace")
    reconcile_parser.add_argument("name", type=str, help="Workload name")
    destination_parser.add_argument("image", type=str, help="Image reference")
    destination_parser.add_argument(
        "--backup-registry",
        type=str,
        required=True,
        help="Backup registry (host[:port])",
    )

    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    try:
        if args.command == "destination":
            print(
                destination(
                    parse(args.image), parse_registry(args.backup_registry)
                ).name
            )
        elif args.command == "run":
            run(load_manifest(args))
        elif args.command == "reconcile":
            result = reconcile(
                load_manifest(args), args.kind, args.namespace, args.name
            )
            if result:
                print(result.status.value)
    except ValidationError as e:
        logger.error("Invalid configuration: %s", e)
        return 2
    except BaseError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
