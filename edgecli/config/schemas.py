from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Optional

# Bumped whenever the on-disk layout changes. Older files are re-fetched.
CURRENT_CONFIG_VERSION = 2

DEFAULT_TTL = "5m"


class CLISection(BaseModel):
    """Versioning and refresh metadata managed by the CLI itself."""
    model_config = ConfigDict(extra="allow")

    remote_config: str = ""
    ttl: str = DEFAULT_TTL
    last_checked: str = ""
    version: str = ""


class Profile(BaseModel):
    model_config = ConfigDict(extra="allow")

    token: str = ""
    email: str = ""
    default: bool = False


class ConfigDocument(BaseModel):
    """
    The cached application configuration.

    Unknown top-level keys are application settings owned by the remote
    document and are kept verbatim.
    """
    model_config = ConfigDict(extra="allow")

    config_version: int = CURRENT_CONFIG_VERSION
    cli: CLISection = Field(default_factory=CLISection)
    profiles: Dict[str, Profile] = Field(default_factory=dict)

    def default_profile(self) -> Optional[Profile]:
        """Return the profile flagged as default, if any."""
        for profile in self.profiles.values():
            if profile.default:
                return profile
        return None
