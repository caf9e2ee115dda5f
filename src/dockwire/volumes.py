"""
Docker Volumes API
"""

import logging
from typing import Any, Dict, List, Optional

from .exceptions import NotFound, VolumeNotFound

logger = logging.getLogger(__name__)


class Volume:
    """Docker Volume object"""

    def __init__(self, attrs: Dict[str, Any], client):
        self.attrs = attrs
        self.client = client
        # Volumes are addressed by name, they have no separate ID
        self.name = attrs.get('Name', '')
        self.id = self.name
        self.driver = attrs.get('Driver', '')
        self.mountpoint = attrs.get('Mountpoint', '')

    def __repr__(self):
        return f"<Volume: {self.name}>"

    def reload(self):
        self.__init__(self.client.inspect(self.name), self.client)
        return self

    def remove(self, force: bool = False):
        return self.client.remove(self.name, force=force)


class VolumeCollection:
    """Docker Volumes collection"""

    def __init__(self, client):
        self.client = client

    @property
    def http(self):
        return self.client.http

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Volume]:
        """
        List volumes

        Args:
            filters: Filters to apply (e.g., {'dangling': ['true']})

        Returns:
            List of Volume objects
        """
        data = self.http.get('/volumes', params={'filters': filters}) or {}
        for warning in data.get('Warnings') or []:
            logger.warning(f"Volume list: {warning}")
        return [Volume(vol, self) for vol in data.get('Volumes') or []]

    def inspect(self, name: str) -> Dict[str, Any]:
        try:
            return self.http.get(f'/volumes/{name}')
        except NotFound as e:
            raise VolumeNotFound(f"Volume not found: {name}", response=e.response,
                                 status_code=e.status_code, explanation=e.explanation) from e

    def get(self, name: str) -> Volume:
        """
        Get volume by name

        Raises:
            VolumeNotFound: If volume not found
        """
        return Volume(self.inspect(name), self)

    def create(self, name: Optional[str] = None, driver: str = 'local',
               driver_opts: Optional[Dict[str, str]] = None,
               labels: Optional[Dict[str, str]] = None) -> Volume:
        """
        Create volume

        Args:
            name: Volume name (the daemon picks one when omitted)
            driver: Volume driver
            driver_opts: Driver options
            labels: Labels for the volume

        Returns:
            Volume object built from the daemon's answer
        """
        config: Dict[str, Any] = {'Driver': driver}
        if name:
            config['Name'] = name
        if driver_opts:
            config['DriverOpts'] = driver_opts
        if labels:
            config['Labels'] = labels
        result = self.http.post('/volumes/create', data=config)
        volume = Volume(result, self)
        logger.info(f"Created volume {volume.name}")
        return volume

    def remove(self, name: str, force: bool = False):
        """
        Remove volume

        Args:
            name: Volume name
            force: Remove even if the volume is in use
        """
        try:
            return self.http.delete(f'/volumes/{name}', params={'force': force})
        except NotFound as e:
            raise VolumeNotFound(f"Volume not found: {name}", response=e.response,
                                 status_code=e.status_code, explanation=e.explanation) from e

    def prune(self, filters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Remove unused volumes; returns {'VolumesDeleted': [...], 'SpaceReclaimed': n}"""
        return self.http.post('/volumes/prune', params={'filters': filters}) or {}
