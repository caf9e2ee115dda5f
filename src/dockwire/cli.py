"""
CLI - command line interface
"""

import argparse
import json
import logging
import sys
from typing import Optional

from .client import DockerClient
from .config import ClientSettings
from .endpoint import EndpointTarget
from .exceptions import APIError, BuildError, DockerException
from .multiplexed import Frame

logger = logging.getLogger(__name__)


class DockwireCLI:
    """dockwire CLI interface"""

    def __init__(self, client: DockerClient, out=None, err=None):
        """
        Initialize CLI

        Args:
            client: Connected Docker client
            out: Binary stream for stdout output (default: sys.stdout.buffer)
            err: Binary stream for stderr output (default: sys.stderr.buffer)
        """
        self.client = client
        self.out = out or sys.stdout.buffer
        self.err = err or sys.stderr.buffer

    def _print(self, text: str):
        self.out.write(f"{text}\n".encode('utf-8'))
        self.out.flush()

    def _print_json(self, value):
        self._print(json.dumps(value, indent=2, sort_keys=True))

    def ping(self):
        """Ping daemon"""
        self._print(self.client.ping())

    def show_version(self):
        """Show daemon version"""
        version = self.client.version()
        lines = [
            f"Server:  {version.get('Version', 'Unknown')}",
            f"API:     {version.get('ApiVersion', 'Unknown')}",
            f"OS/Arch: {version.get('Os', '?')}/{version.get('Arch', '?')}",
        ]
        for line in lines:
            self._print(line)

    def show_info(self):
        """Show daemon info"""
        self._print_json(self.client.info())

    def events(self, since: Optional[int] = None, until: Optional[int] = None):
        """Print daemon events as they arrive, one JSON record per line"""
        for event in self.client.events(since=since, until=until):
            self._print(json.dumps(event, sort_keys=True))

    def _write_output(self, chunk):
        if isinstance(chunk, Frame):
            target = self.err if chunk.is_stderr else self.out
            target.write(chunk.data)
            target.flush()
        else:
            self.out.write(chunk)
            self.out.flush()

    def show_logs(self, name: str, tail: str = 'all', follow: bool = False,
                  timestamps: bool = False):
        """Show container logs, stdout and stderr kept apart"""
        output = self.client.containers.logs(
            name, stream=True, follow=follow, tail=tail, timestamps=timestamps
        )
        for chunk in output:
            self._write_output(chunk)

    def stats(self, name: str, stream: bool = False):
        """Print container stats records"""
        if not stream:
            self._print_json(self.client.containers.stats(name, stream=False))
            return
        for record in self.client.containers.stats(name, stream=True):
            self._print(json.dumps(record, sort_keys=True))

    def _progress(self, record):
        status = record.get('status')
        if not status:
            return
        layer = record.get('id')
        progress = record.get('progress', '')
        self._print(f"{layer}: {status} {progress}".rstrip() if layer else status)

    def pull(self, repository: str, tag: str = 'latest', platform: Optional[str] = None):
        """Pull image, printing progress"""
        image = self.client.images.pull(repository, tag=tag, platform=platform,
                                        callback=self._progress)
        self._print(f"Pulled {image.id}")

    def build(self, path: str, tag: Optional[str] = None, dockerfile: str = 'Dockerfile'):
        """Build image, printing build output"""
        image = self.client.images.build(path=path, tag=tag, dockerfile=dockerfile,
                                         callback=self._print)
        self._print(f"Built {image.id}")

    def exec_command(self, name: str, command: str, user: str = '') -> int:
        """Run command in container; returns its exit code"""
        exec_id = self.client.containers.exec_create(name, command, user=user)
        for chunk in self.client.containers.exec_start(exec_id):
            self._write_output(chunk)
        exit_code = self.client.containers.exec_inspect(exec_id).get('ExitCode')
        return exit_code if exit_code is not None else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='dockwire',
        description='dockwire - Docker Engine API client',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Usage examples:
  %(prog)s ping                                    # Check the daemon answers
  %(prog)s --host tcp://10.0.0.5:2375 version
  %(prog)s logs --name web --follow
  %(prog)s exec --name web --command "ls -l /"
  %(prog)s build --path . --tag myimage:latest
  %(prog)s events --since 1700000000
"""
    )

    parser.add_argument(
        'action',
        choices=['ping', 'version', 'info', 'events', 'logs', 'stats', 'pull', 'build', 'exec'],
        help='Action'
    )

    # Connection parameters
    parser.add_argument('--host', help='Daemon address (default: DOCKER_HOST or local socket)')
    parser.add_argument('--timeout', type=float, help='Request timeout in seconds')
    parser.add_argument('--settings', help='Settings file path')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    # Container parameters
    parser.add_argument('--name', help='Container name or ID')
    parser.add_argument('--command', help='Command to execute')
    parser.add_argument('--user', default='', help='User for exec')

    # Log parameters
    parser.add_argument('--tail', default='all', help='Number of log lines (default: all)')
    parser.add_argument('--follow', action='store_true', help='Keep streaming')
    parser.add_argument('--timestamps', action='store_true', help='Show timestamps')

    # Event parameters
    parser.add_argument('--since', type=int, help='Start timestamp (Unix epoch)')
    parser.add_argument('--until', type=int, help='End timestamp (Unix epoch)')

    # Image parameters
    parser.add_argument('--image', help='Image repository (for pull)')
    parser.add_argument('--tag', help='Image tag')
    parser.add_argument('--path', help='Build context directory')
    parser.add_argument('--dockerfile', default='Dockerfile', help='Dockerfile name')
    parser.add_argument('--platform', help='Platform (e.g., linux/amd64)')

    return parser


def create_client(args, settings: ClientSettings) -> DockerClient:
    """Client from command line options over the loaded settings"""
    # Follow streams have no natural end, so they wait forever
    streaming = args.follow or args.action == 'events'
    timeout = None if streaming else (args.timeout or settings.timeout)
    target = (EndpointTarget.parse(args.host, tls=settings.tls_config())
              if args.host else settings.endpoint())
    return DockerClient(target, timeout=timeout, version=settings.api_version)


def run_cli(argv=None) -> int:
    """Start CLI application"""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = ClientSettings(settings_file=args.settings)
    level = logging.DEBUG if args.verbose else settings.log_level
    logging.basicConfig(level=level, format='%(levelname)s %(name)s: %(message)s')

    if args.action in ('logs', 'stats', 'exec') and not args.name:
        parser.error(f"{args.action} requires --name")
    if args.action == 'exec' and not args.command:
        parser.error("exec requires --command")
    if args.action == 'pull' and not args.image:
        parser.error("pull requires --image")
    if args.action == 'build' and not args.path:
        parser.error("build requires --path")

    try:
        client = create_client(args, settings)
    except ValueError as e:
        parser.error(str(e))

    cli = DockwireCLI(client)

    # Executing action
    try:
        if args.action == 'ping':
            cli.ping()

        elif args.action == 'version':
            cli.show_version()

        elif args.action == 'info':
            cli.show_info()

        elif args.action == 'events':
            cli.events(since=args.since, until=args.until)

        elif args.action == 'logs':
            cli.show_logs(args.name, tail=args.tail, follow=args.follow,
                          timestamps=args.timestamps)

        elif args.action == 'stats':
            cli.stats(args.name, stream=args.follow)

        elif args.action == 'pull':
            cli.pull(args.image, tag=args.tag or 'latest', platform=args.platform)

        elif args.action == 'build':
            cli.build(args.path, tag=args.tag, dockerfile=args.dockerfile)

        elif args.action == 'exec':
            return cli.exec_command(args.name, args.command, user=args.user)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except BuildError as e:
        logger.error(f"{e}")
        return 1
    except APIError as e:
        logger.warning(f"Daemon error: {e}")
        return 1
    except DockerException as e:
        logger.error(f"Error: {e}")
        return 1
    finally:
        client.close()

    return 0


def main():
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
