"""
Docker Containers API
"""

import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from .exceptions import ContainerNotFound, NotFound
from .multiplexed import Frame, join_output, split_output
from .tar_utils import create_tar_from_file

logger = logging.getLogger(__name__)


class Container:
    """Docker Container object"""

    def __init__(self, attrs: Dict[str, Any], client):
        self.attrs = attrs
        self.client = client
        self.id = attrs.get('Id', '')
        self.short_id = self.id[:12] if self.id else ''
        self.name = attrs.get('Name', attrs.get('Names', [''])[0] if attrs.get('Names') else '').lstrip('/')

        # Inspect returns a State object, list returns a plain string
        state = attrs.get('State', {})
        if isinstance(state, dict):
            self.status = state.get('Status', 'unknown')
        else:
            self.status = state or attrs.get('Status', 'unknown')

        config = attrs.get('Config') or {}
        self.image = config.get('Image', attrs.get('Image', ''))
        self.labels = config.get('Labels', attrs.get('Labels')) or {}
        # Unknown for list results, which carry no Config
        self.tty: Optional[bool] = config.get('Tty') if config else None

    def __repr__(self):
        return f"<Container: {self.name or self.short_id}>"

    def reload(self):
        """Refresh attributes from the daemon"""
        self.__init__(self.client.inspect(self.id), self.client)
        return self

    def start(self):
        return self.client.start(self.id)

    def stop(self, timeout: int = 10):
        return self.client.stop(self.id, timeout=timeout)

    def restart(self, timeout: int = 10):
        return self.client.restart(self.id, timeout=timeout)

    def kill(self, signal: str = 'SIGKILL'):
        return self.client.kill(self.id, signal=signal)

    def pause(self):
        return self.client.pause(self.id)

    def unpause(self):
        return self.client.unpause(self.id)

    def remove(self, force: bool = False, v: bool = False):
        return self.client.remove(self.id, force=force, v=v)

    def wait(self, condition: str = 'not-running') -> Dict[str, Any]:
        return self.client.wait(self.id, condition=condition)

    def top(self, ps_args: Optional[str] = None) -> Dict[str, Any]:
        return self.client.top(self.id, ps_args=ps_args)

    def changes(self) -> List[Dict[str, Any]]:
        return self.client.changes(self.id)

    def rename(self, name: str):
        self.client.rename(self.id, name)
        self.name = name

    def logs(self, **kwargs):
        """Get container logs (see ContainerCollection.logs)"""
        return self.client.logs(self.id, tty=self.tty, **kwargs)

    def attach(self, **kwargs) -> Iterator[Union[Frame, bytes]]:
        return self.client.attach(self.id, tty=self.tty, **kwargs)

    def stats(self, stream: bool = True):
        return self.client.stats(self.id, stream=stream)

    def exec_run(self, cmd, **kwargs):
        """Execute command in container (see ContainerCollection.exec_run)"""
        return self.client.exec_run(self.id, cmd, **kwargs)

    def export(self) -> Iterator[bytes]:
        return self.client.export(self.id)

    def put_archive(self, path: str, data) -> bool:
        return self.client.put_archive(self.id, path, data)

    def get_archive(self, path: str) -> bytes:
        return self.client.get_archive(self.id, path)


class ContainerCollection:
    """Docker Containers collection"""

    def __init__(self, client):
        self.client = client

    @property
    def http(self):
        return self.client.http

    def _path(self, container_id: str, action: str = '') -> str:
        return f"/containers/{container_id}/{action}" if action else f"/containers/{container_id}"

    def _call(self, method: str, container_id: str, action: str = '', **kwargs):
        try:
            return self.http.request(method, self._path(container_id, action), **kwargs)
        except NotFound as e:
            raise ContainerNotFound(
                f"Container not found: {container_id}",
                response=e.response, status_code=e.status_code, explanation=e.explanation
            ) from e

    def list(self, all: bool = False, limit: Optional[int] = None,
             filters: Optional[Dict[str, Any]] = None) -> List[Container]:
        """
        List containers

        Args:
            all: Show all containers (including stopped)
            limit: Maximum number of containers to return
            filters: Filters to apply

        Returns:
            List of Container objects
        """
        params = {'all': all, 'limit': limit, 'filters': filters}
        containers_data = self.http.get('/containers/json', params=params) or []
        return [Container(c_data, self) for c_data in containers_data]

    def inspect(self, container_id: str) -> Dict[str, Any]:
        return self._call('GET', container_id, 'json')

    def get(self, container_id: str) -> Container:
        """
        Get container by ID or name

        Raises:
            ContainerNotFound: If container not found
        """
        return Container(self.inspect(container_id), self)

    def create(self, image: str, name: Optional[str] = None,
               command: Optional[Union[str, List[str]]] = None,
               environment: Optional[Dict[str, str]] = None,
               volumes: Optional[Dict[str, Dict[str, str]]] = None,
               ports: Optional[Dict[str, int]] = None,
               stdin_open: bool = False, tty: bool = False,
               network_mode: Optional[str] = None, hostname: Optional[str] = None,
               auto_remove: bool = False, platform: Optional[str] = None,
               **kwargs) -> Container:
        """
        Create container

        Args:
            image: Image name or ID
            name: Container name
            command: Command to run (a string runs through sh -c)
            environment: Environment variables
            volumes: Volume mounts {host_path: {'bind': container_path, 'mode': 'rw'}}
            ports: Port bindings {container_port: host_port}
            stdin_open: Keep STDIN open
            tty: Allocate TTY
            network_mode: Network mode
            hostname: Container hostname
            auto_remove: Auto-remove when stopped
            platform: Platform (e.g., linux/amd64)
            **kwargs: Extra fields merged into the create body

        Returns:
            Container object
        """
        config: Dict[str, Any] = {
            'Image': image,
            'Tty': tty,
            'OpenStdin': stdin_open,
            'AttachStdin': stdin_open,
            'AttachStdout': True,
            'AttachStderr': True,
        }
        if command:
            config['Cmd'] = ['sh', '-c', command] if isinstance(command, str) else command
        if environment:
            config['Env'] = [f"{k}={v}" for k, v in environment.items()]
        if hostname:
            config['Hostname'] = hostname

        host_config: Dict[str, Any] = {}
        if auto_remove:
            host_config['AutoRemove'] = True
        if network_mode:
            host_config['NetworkMode'] = network_mode
        if volumes:
            host_config['Binds'] = [
                f"{host_path}:{mount['bind']}:{mount.get('mode', 'rw')}"
                for host_path, mount in volumes.items()
            ]
        if ports:
            config['ExposedPorts'] = {f"{port}/tcp": {} for port in ports}
            host_config['PortBindings'] = {
                f"{port}/tcp": [{'HostPort': str(host_port)}] for port, host_port in ports.items()
            }
        if host_config:
            config['HostConfig'] = host_config
        config.update(kwargs)

        result = self.http.post(
            '/containers/create', params={'name': name, 'platform': platform}, data=config
        )
        for warning in result.get('Warnings') or []:
            logger.warning(f"Container create: {warning}")
        return self.get(result['Id'])

    def run(self, image: str, command=None, **kwargs) -> Container:
        """Create and start container"""
        container = self.create(image, command=command, **kwargs)
        container.start()
        return container

    def start(self, container_id: str):
        return self._call('POST', container_id, 'start')

    def stop(self, container_id: str, timeout: int = 10):
        return self._call('POST', container_id, 'stop', params={'t': timeout})

    def restart(self, container_id: str, timeout: int = 10):
        return self._call('POST', container_id, 'restart', params={'t': timeout})

    def kill(self, container_id: str, signal: str = 'SIGKILL'):
        return self._call('POST', container_id, 'kill', params={'signal': signal})

    def pause(self, container_id: str):
        return self._call('POST', container_id, 'pause')

    def unpause(self, container_id: str):
        return self._call('POST', container_id, 'unpause')

    def remove(self, container_id: str, force: bool = False, v: bool = False):
        return self._call('DELETE', container_id, params={'force': force, 'v': v})

    def wait(self, container_id: str, condition: str = 'not-running') -> Dict[str, Any]:
        """Block until the container stops; returns {'StatusCode': ..., 'Error': ...}"""
        return self._call('POST', container_id, 'wait', params={'condition': condition})

    def top(self, container_id: str, ps_args: Optional[str] = None) -> Dict[str, Any]:
        return self._call('GET', container_id, 'top', params={'ps_args': ps_args})

    def changes(self, container_id: str) -> List[Dict[str, Any]]:
        """Filesystem changes since creation (Kind 0: modified, 1: added, 2: deleted)"""
        # null when nothing changed
        return self._call('GET', container_id, 'changes') or []

    def rename(self, container_id: str, name: str):
        return self._call('POST', container_id, 'rename', params={'name': name})

    def _is_tty(self, container_id: str, tty: Optional[bool]) -> bool:
        if tty is not None:
            return tty
        config = self.inspect(container_id).get('Config') or {}
        return bool(config.get('Tty', False))

    def _output_stream(self, response, tty: bool) -> Iterator[Union[Frame, bytes]]:
        # TTY output is not framed
        if tty and not response.is_multiplexed:
            return response.iter_chunks()
        return response.frames()

    def logs(self, container_id: str, stdout: bool = True, stderr: bool = True,
             stream: bool = False, timestamps: bool = False, tail: Union[str, int] = 'all',
             since: Optional[int] = None, until: Optional[int] = None, follow: bool = False,
             tty: Optional[bool] = None, demux: bool = False):
        """
        Get container logs

        Args:
            container_id: Container ID
            stdout: Return stdout stream
            stderr: Return stderr stream
            stream: Return a lazy iterator instead of collected output
            timestamps: Show timestamps
            tail: Number of lines to show from end ('all' for all)
            since: Show logs since timestamp (Unix epoch)
            until: Show logs until timestamp (Unix epoch)
            follow: Keep streaming new output
            tty: Whether the container has a TTY (default: inspect it)
            demux: Return (stdout, stderr) instead of interleaved output

        Returns:
            Frames (or raw chunks for a TTY container) when stream=True,
            otherwise bytes, or a (stdout, stderr) tuple with demux=True
        """
        tty = self._is_tty(container_id, tty)
        params = {
            'stdout': stdout,
            'stderr': stderr,
            'timestamps': timestamps,
            'tail': tail,
            'follow': follow,
            'since': since,
            'until': until,
        }
        try:
            response = self.http.send('GET', self._path(container_id, 'logs'), params=params)
        except NotFound as e:
            raise ContainerNotFound(f"Container not found: {container_id}",
                                    response=e.response, status_code=e.status_code,
                                    explanation=e.explanation) from e

        output = self._output_stream(response, tty)
        if stream:
            return output
        return self._collect(output, tty, demux)

    def _collect(self, output, tty: bool, demux: bool):
        if tty:
            data = b''.join(output)
            return (data, b'') if demux else data
        return split_output(output) if demux else join_output(output)

    def attach(self, container_id: str, stdout: bool = True, stderr: bool = True,
               logs: bool = False, tty: Optional[bool] = None) -> Iterator[Union[Frame, bytes]]:
        """
        Attach to the container output

        Args:
            container_id: Container ID
            stdout: Attach to stdout
            stderr: Attach to stderr
            logs: Replay output produced before attaching
            tty: Whether the container has a TTY (default: inspect it)

        Returns:
            Lazy iterator of frames (raw chunks for a TTY container)
        """
        tty = self._is_tty(container_id, tty)
        params = {'stream': True, 'stdout': stdout, 'stderr': stderr, 'logs': logs}
        response = self.http.send('POST', self._path(container_id, 'attach'), params=params)
        return self._output_stream(response, tty)

    def stats(self, container_id: str, stream: bool = True):
        """
        Resource usage statistics

        Returns:
            Lazy iterator of stats records when stream=True, otherwise one record
        """
        params = {'stream': stream}
        if not stream:
            return self._call('GET', container_id, 'stats', params=params)
        return self.http.stream_json('GET', self._path(container_id, 'stats'), params=params)

    def exec_create(self, container_id: str, cmd: Union[str, List[str]], stdout: bool = True,
                    stderr: bool = True, stdin: bool = False, tty: bool = False,
                    privileged: bool = False, user: str = '',
                    environment: Optional[Dict[str, str]] = None, workdir: str = '') -> str:
        """
        Create an exec instance

        Returns:
            Exec instance ID
        """
        exec_config: Dict[str, Any] = {
            'AttachStdout': stdout,
            'AttachStderr': stderr,
            'AttachStdin': stdin,
            'Tty': tty,
            'Privileged': privileged,
            'Cmd': cmd if isinstance(cmd, list) else ['sh', '-c', cmd],
        }
        if user:
            exec_config['User'] = user
        if environment:
            exec_config['Env'] = [f"{k}={v}" for k, v in environment.items()]
        if workdir:
            exec_config['WorkingDir'] = workdir

        result = self._call('POST', container_id, 'exec', data=exec_config)
        return result['Id']

    def exec_start(self, exec_id: str, detach: bool = False, tty: bool = False):
        """
        Start an exec instance

        Returns:
            None when detached, otherwise a lazy iterator of frames (raw
            chunks when tty=True)
        """
        start_config = {'Detach': detach, 'Tty': tty}
        if detach:
            self.http.post(f'/exec/{exec_id}/start', data=start_config)
            return None
        response = self.http.send('POST', f'/exec/{exec_id}/start', data=start_config)
        return self._output_stream(response, tty)

    def exec_inspect(self, exec_id: str) -> Dict[str, Any]:
        return self.http.get(f'/exec/{exec_id}/json')

    def exec_run(self, container_id: str, cmd: Union[str, List[str]], stream: bool = False,
                 demux: bool = False, detach: bool = False, tty: bool = False,
                 **kwargs) -> Tuple[Optional[int], Any]:
        """
        Execute command in running container

        Args:
            container_id: Container ID
            cmd: Command to execute (a string runs through sh -c)
            stream: Return a lazy output iterator instead of collected output
            demux: Collect output as (stdout, stderr)
            detach: Start in background and return immediately
            tty: Allocate TTY
            **kwargs: exec_create options (user, environment, workdir...)

        Returns:
            (exit_code, output); exit_code is None when streaming or detached
        """
        exec_id = self.exec_create(container_id, cmd, tty=tty, **kwargs)
        output = self.exec_start(exec_id, detach=detach, tty=tty)
        if detach or stream:
            return None, output

        collected = self._collect(output, tty, demux)
        exit_code = self.exec_inspect(exec_id).get('ExitCode')
        return exit_code, collected

    def export(self, container_id: str) -> Iterator[bytes]:
        """Container filesystem as a lazy tar byte stream"""
        return self.http.stream_raw('GET', self._path(container_id, 'export'))

    def put_archive(self, container_id: str, path: str, data) -> bool:
        """
        Upload tar archive to container

        Args:
            container_id: Container ID
            path: Path in container where to extract archive
            data: Tar archive as bytes or a byte stream

        Returns:
            True if successful
        """
        self._call('PUT', container_id, 'archive', params={'path': path}, data=data,
                   headers={'Content-Type': 'application/x-tar'})
        return True

    def put_file(self, container_id: str, file_path: str, dest_dir: str) -> bool:
        """Copy one local file into a container directory"""
        return self.put_archive(container_id, dest_dir, create_tar_from_file(file_path))

    def get_archive(self, container_id: str, path: str) -> bytes:
        """
        Download path from container as tar archive

        Returns:
            Tar archive as bytes
        """
        try:
            return self.http.request_binary(
                'GET', self._path(container_id, 'archive'), params={'path': path}
            )
        except NotFound as e:
            raise ContainerNotFound(f"No such container or path: {container_id}:{path}",
                                    response=e.response, status_code=e.status_code,
                                    explanation=e.explanation) from e
