"""
Docker Images API
"""

import logging
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from .exceptions import BuildError, ImageNotFound, NotFound
from .tar_utils import stream_tar_context

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Dict[str, Any]], None]


class Image:
    """Docker Image object"""

    def __init__(self, attrs: Dict[str, Any], client):
        self.attrs = attrs
        self.client = client
        self.id = attrs.get('Id', '')
        self.short_id = self.id.split(':')[-1][:12] if self.id else ''
        self.tags = attrs.get('RepoTags') or []

    def __repr__(self):
        return f"<Image: {self.tags[0] if self.tags else self.short_id}>"

    def tag(self, repository: str, tag: str = 'latest'):
        return self.client.tag(self.id, repository, tag=tag)

    def history(self) -> List[Dict[str, Any]]:
        return self.client.history(self.id)

    def export(self) -> Iterator[bytes]:
        """Image tarball as a lazy byte stream"""
        return self.client.export(self.id)

    def remove(self, force: bool = False, noprune: bool = False):
        """Remove this image"""
        return self.client.remove(self.id, force=force, noprune=noprune)


def _progress_error(record: Dict[str, Any]) -> Optional[str]:
    if 'error' not in record and 'errorDetail' not in record:
        return None
    detail = record.get('errorDetail') or {}
    return detail.get('message') or record.get('error') or 'unknown error'


class ImageCollection:
    """Docker Images collection"""

    def __init__(self, client):
        self.client = client

    @property
    def http(self):
        return self.client.http

    def list(self, name: Optional[str] = None, all: bool = False,
             filters: Optional[Dict[str, Any]] = None) -> List[Image]:
        """
        List images

        Args:
            name: Only images with a tag containing this text
            all: Show all images (including intermediates)
            filters: Filters to apply

        Returns:
            List of Image objects
        """
        images_data = self.http.get('/images/json', params={'all': all, 'filters': filters}) or []
        images = [Image(img_data, self) for img_data in images_data]
        if name:
            images = [img for img in images if any(name in tag for tag in img.tags)]
        return images

    def inspect(self, name: str) -> Dict[str, Any]:
        try:
            return self.http.get(f'/images/{name}/json')
        except NotFound as e:
            raise ImageNotFound(f"Image not found: {name}", response=e.response,
                                status_code=e.status_code, explanation=e.explanation) from e

    def get(self, name: str) -> Image:
        """
        Get image by name or ID

        Raises:
            ImageNotFound: If image not found
        """
        return Image(self.inspect(name), self)

    def _follow_progress(self, records: Iterable[Dict[str, Any]], action: str,
                         callback: Optional[ProgressCallback]) -> List[Dict[str, Any]]:
        log = []
        try:
            for record in records:
                log.append(record)
                message = _progress_error(record)
                if message is not None:
                    raise BuildError(f"{action} failed: {message}", build_log=log)
                if callback:
                    callback(record)
        finally:
            # Releases the connection when stopping early
            if hasattr(records, 'close'):
                records.close()
        return log

    def pull_stream(self, repository: str, tag: str = 'latest', platform: Optional[str] = None,
                    auth_header: Optional[str] = None) -> Iterator[Dict[str, Any]]:
        """Pull image, returning the daemon's progress records lazily"""
        if ':' in repository.rsplit('/', 1)[-1] and tag == 'latest':
            repository, tag = repository.rsplit(':', 1)
        params = {'fromImage': repository, 'tag': tag, 'platform': platform}
        headers = {'X-Registry-Auth': auth_header} if auth_header else None
        try:
            return self.http.stream_json('POST', '/images/create', params=params, headers=headers)
        except NotFound as e:
            raise ImageNotFound(f"Image not found: {repository}:{tag}",
                                response=e.response, status_code=e.status_code,
                                explanation=e.explanation) from e

    def pull(self, repository: str, tag: str = 'latest', platform: Optional[str] = None,
             callback: Optional[ProgressCallback] = None, auth_header: Optional[str] = None) -> Image:
        """
        Pull image from registry

        Args:
            repository: Repository name (may include the tag)
            tag: Image tag
            platform: Platform (e.g., linux/amd64)
            callback: Called with every progress record
            auth_header: Base64 X-Registry-Auth value

        Returns:
            Image object

        Raises:
            BuildError: The progress stream reported an error
        """
        if ':' in repository.rsplit('/', 1)[-1] and tag == 'latest':
            repository, tag = repository.rsplit(':', 1)
        records = self.pull_stream(repository, tag=tag, platform=platform, auth_header=auth_header)
        self._follow_progress(records, 'Pull', callback)
        return self.get(f"{repository}:{tag}")

    def build_stream(self, path: Optional[str] = None, fileobj=None, tag: Optional[str] = None,
                     dockerfile: str = 'Dockerfile', buildargs: Optional[Dict[str, str]] = None,
                     platform: Optional[str] = None, rm: bool = True, nocache: bool = False,
                     pull: bool = False, labels: Optional[Dict[str, str]] = None,
                     exclude: Optional[List[str]] = None) -> Iterator[Dict[str, Any]]:
        """
        Start a build, returning the daemon's progress records lazily

        Args:
            path: Build context directory, streamed as a tar archive
            fileobj: Ready tar archive (bytes, binary file or byte iterable)
            tag: Tag for the image
            dockerfile: Dockerfile path inside the context
            buildargs: Build arguments
            platform: Target platform
            rm: Remove intermediate containers
            nocache: Do not use the build cache
            pull: Always pull newer base images
            labels: Labels for the image
            exclude: Context exclude patterns (default: .dockerignore)
        """
        if (path is None) == (fileobj is None):
            raise ValueError("Exactly one of path or fileobj is required")
        context = stream_tar_context(path, exclude=exclude, dockerfile=dockerfile) if path else fileobj

        params = {
            'dockerfile': dockerfile,
            't': tag,
            'buildargs': buildargs,
            'platform': platform,
            'rm': rm,
            'nocache': nocache,
            'pull': pull,
            'labels': labels,
        }
        headers = {'Content-Type': 'application/x-tar'}
        return self.http.stream_json('POST', '/build', params=params, data=context, headers=headers)

    def build(self, path: Optional[str] = None, tag: Optional[str] = None,
              callback: Optional[Callable[[str], None]] = None, **kwargs) -> Image:
        """
        Build image from Dockerfile

        Args:
            path: Build context path
            tag: Tag for the image
            callback: Called with every line of build output
            **kwargs: build_stream options (dockerfile, buildargs, fileobj...)

        Returns:
            Built Image object

        Raises:
            BuildError: The build reported an error or no image ID
        """
        image_id = None

        def on_record(record: Dict[str, Any]):
            nonlocal image_id
            msg = (record.get('stream') or '').strip()
            if callback and msg:
                callback(msg)
            aux = record.get('aux')
            if isinstance(aux, dict) and 'ID' in aux:
                image_id = aux['ID']

        records = self.build_stream(path=path, tag=tag, **kwargs)
        log = self._follow_progress(records, 'Build', on_record)

        if image_id is None:
            # Older daemons only print the ID
            for record in reversed(log):
                msg = (record.get('stream') or '').strip()
                if msg.startswith('Successfully built '):
                    image_id = msg.split()[-1]
                    break
        if image_id is None:
            raise BuildError("Build completed but no image ID was reported", build_log=log)
        logger.info(f"Built image {tag or image_id}")
        return self.get(image_id)

    def push(self, repository: str, tag: Optional[str] = None, auth_header: Optional[str] = None,
             callback: Optional[ProgressCallback] = None) -> List[Dict[str, Any]]:
        """
        Push image to registry

        Returns:
            Progress records

        Raises:
            BuildError: The progress stream reported an error
        """
        headers = {'X-Registry-Auth': auth_header or 'e30='}  # base64('{}')
        records = self.http.stream_json(
            'POST', f'/images/{repository}/push', params={'tag': tag}, headers=headers
        )
        return self._follow_progress(records, 'Push', callback)

    def tag(self, image: str, repository: str, tag: str = 'latest', force: bool = False) -> bool:
        self.http.post(f'/images/{image}/tag', params={'repo': repository, 'tag': tag, 'force': force})
        return True

    def history(self, image: str) -> List[Dict[str, Any]]:
        return self.http.get(f'/images/{image}/history')

    def export(self, image: str) -> Iterator[bytes]:
        """
        Export image as a tarball (docker save)

        Args:
            image: Image name or ID

        Returns:
            Tar archive chunks as the daemon sends them

        Raises:
            ImageNotFound: If image not found
        """
        try:
            return self.http.stream_raw('GET', f'/images/{image}/get')
        except NotFound as e:
            raise ImageNotFound(f"Image not found: {image}", response=e.response,
                                status_code=e.status_code, explanation=e.explanation) from e

    def search(self, term: str, limit: Optional[int] = None,
               filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Search Docker Hub; results carry name, description, star_count, is_official"""
        return self.http.get('/images/search', params={'term': term, 'limit': limit,
                                                          'filters': filters}) or []

    def remove(self, image: str, force: bool = False, noprune: bool = False):
        """
        Remove image

        Args:
            image: Image name or ID
            force: Force removal
            noprune: Don't delete untagged parents
        """
        try:
            return self.http.delete(f'/images/{image}', params={'force': force, 'noprune': noprune})
        except NotFound as e:
            raise ImageNotFound(f"Image not found: {image}", response=e.response,
                                status_code=e.status_code, explanation=e.explanation) from e
