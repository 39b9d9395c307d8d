"""Post-build launch on the simulator or a connected device."""

from crank.run.runner import deploy_to_device, find_serial_port, launch_simulator, run_bundle

__all__ = [
    "deploy_to_device",
    "find_serial_port",
    "launch_simulator",
    "run_bundle",
]
