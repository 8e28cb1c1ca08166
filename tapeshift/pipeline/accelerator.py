import logging
from tapeshift.domain.events import AccelerationSelected, StatusMessage, Level
from tapeshift.domain.models import AccelerationProfile
from tapeshift.infrastructure.event_bus import EventBus
from tapeshift.infrastructure.vaapi import VaapiProbe
from tapeshift.ui.prompts import Prompter


class AcceleratorSelector:
    """Chooses between software and VAAPI encoding, once per session."""

    def __init__(self, probe: VaapiProbe, prompter: Prompter, event_bus: EventBus):
        self.probe = probe
        self.prompter = prompter
        self.event_bus = event_bus
        self.logger = logging.getLogger(__name__)

    def _warn(self, message: str):
        self.event_bus.publish(StatusMessage(level=Level.WARN, message=message))

    def select(self) -> AccelerationProfile:
        device = self.probe.detect()
        profile = AccelerationProfile.software()

        if device is not None:
            self.event_bus.publish(StatusMessage(message="VAAPI-based hardware acceleration is available!"))
            if self.prompter.confirm("Do you wish to utilise hardware acceleration?"):
                self._warn("The '-preset' parameter will be ignored with VAAPI!")
                profile = AccelerationProfile.vaapi(device)
            else:
                self._warn("Hardware acceleration disabled!")
                self._warn("Software-based encoding may incur a performance penalty!")

        self.logger.info(f"Encoder backend: {profile.backend.value} (device={profile.device})")
        self.event_bus.publish(AccelerationSelected(profile=profile))
        return profile
