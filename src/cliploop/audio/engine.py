"""Audio backend selection and channel pair creation."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from cliploop.audio.channel_pair import ChannelPair
from cliploop.audio.mock_backend import MockBackendProvider
from cliploop.audio.types import AudioDevice, BackendProvider, Scheduler
from cliploop.core.env import is_mock_audio_forced

logger = logging.getLogger(__name__)

CHANNEL_NAMES = ("A", "B")


class AudioEngine:
    """Manages device discovery and creates the two loop channels."""

    def __init__(
        self,
        *,
        backend: str = "sounddevice",
        progress_interval: float = 0.1,
        providers: Optional[List[BackendProvider]] = None,
    ) -> None:
        self._providers: List[BackendProvider] = list(providers or [])
        if not self._providers:
            if backend == "mock" or is_mock_audio_forced():
                self._providers.append(MockBackendProvider(progress_interval=progress_interval))
            else:
                self._providers.extend(self._real_providers(progress_interval))
        if not self._providers:
            logger.warning("No audio backend available, falling back to mock")
            self._providers.append(MockBackendProvider(label="Mock fallback", progress_interval=progress_interval))
        self._devices: Dict[str, AudioDevice] = {}

    @staticmethod
    def _real_providers(progress_interval: float) -> List[BackendProvider]:
        try:
            from cliploop.audio.sounddevice_player import SoundDeviceBackend
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Importing the sounddevice backend failed: %s", exc)
            return []
        provider = SoundDeviceBackend(progress_interval=progress_interval)
        if not provider.is_available:
            logger.error("sounddevice backend unavailable (missing PortAudio/libsndfile/numpy)")
            return []
        return [provider]

    def refresh_devices(self) -> None:
        self._devices.clear()
        for provider in self._providers:
            devices = provider.list_devices()
            if not devices:
                logger.debug("Provider %s returned no devices", getattr(provider, "backend", provider))
                continue
            for device in devices:
                self._devices[device.id] = device
        logger.debug("Registered %d audio devices", len(self._devices))

    def get_devices(self) -> List[AudioDevice]:
        if not self._devices:
            self.refresh_devices()
        return list(self._devices.values())

    def default_device(self) -> AudioDevice:
        devices = self.get_devices()
        if not devices:
            raise ValueError("No audio output devices available")
        for device in devices:
            if device.is_default:
                return device
        return devices[0]

    def create_channel_pair(self, scheduler: Scheduler, device_id: Optional[str] = None) -> ChannelPair:
        if device_id is None:
            device = self.default_device()
        else:
            if not self._devices:
                self.refresh_devices()
            device = self._devices.get(device_id)
            if device is None:
                raise ValueError(f"Unknown device: {device_id}")
        provider = self._get_provider(device)
        first, second = (provider.create_channel(device, name, scheduler) for name in CHANNEL_NAMES)
        logger.info("Channel pair created on %s", device.name)
        return ChannelPair(first, second)

    def _get_provider(self, device: AudioDevice) -> BackendProvider:
        for provider in self._providers:
            if provider.backend is device.backend:
                return provider
        raise ValueError(f"No provider for backend {device.backend}")
