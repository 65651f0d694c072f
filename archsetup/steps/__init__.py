from .step_10_update_system import UpdateSystemStep
from .step_15_system_tuning import SystemTuningStep
from .step_20_firewall import FirewallStep
from .step_25_privilege_policy import PrivilegePolicyStep
from .step_30_gpu_drivers import GpuDriversStep
from .step_35_default_shell import DefaultShellStep
from .step_40_bootstrap_helper import BootstrapHelperStep
from .step_50_install_software import InstallSoftwareStep
from .step_55_install_themes import InstallThemesStep
from .step_60_install_media import InstallMediaStep
from .step_70_deploy_user_config import DeployUserConfigStep
from .step_75_configure_blender import ConfigureBlenderStep
from .step_80_default_applications import DefaultApplicationsStep

__all__ = [
    "UpdateSystemStep",
    "SystemTuningStep",
    "FirewallStep",
    "PrivilegePolicyStep",
    "GpuDriversStep",
    "DefaultShellStep",
    "BootstrapHelperStep",
    "InstallSoftwareStep",
    "InstallThemesStep",
    "InstallMediaStep",
    "DeployUserConfigStep",
    "ConfigureBlenderStep",
    "DefaultApplicationsStep",
]
