"""OS template management for the server container."""
from typing import Optional

from starlxc.core.logger import get_logger
from starlxc.core.runner import HostCommandRunner

logger = get_logger(__name__)

DEFAULT_TEMPLATE_STORAGE = "local"


class TemplateManager:
    """Resolves and downloads the Debian template the container is built from."""

    def __init__(self, runner: Optional[HostCommandRunner] = None):
        self.runner = runner or HostCommandRunner()

    def detect_template_storage(self) -> str:
        """First storage that accepts container templates."""
        result = self.runner.run(['pvesm', 'status', '-content', 'vztmpl'])
        if result.ok:
            rows = result.output.strip().splitlines()[1:]
            if rows and rows[0].split():
                return rows[0].split()[0]
        return DEFAULT_TEMPLATE_STORAGE

    def resolve_template(self, template: str) -> Optional[str]:
        """Resolve a short template name to the newest available file name.

        Args:
            template: Template prefix (e.g., 'debian-12-standard')

        Returns:
            File name like 'debian-12-standard_12.7-1_amd64.tar.zst', or None
        """
        result = self.runner.run(['pveam', 'available', '--section', 'system'])
        if not result.ok:
            logger.error(f"Failed to list available templates: {result.tail()}")
            return None

        matches = []
        for line in result.output.splitlines():
            # "system          debian-12-standard_12.7-1_amd64.tar.zst"
            parts = line.split()
            if len(parts) >= 2 and template in parts[1]:
                matches.append(parts[1])

        # pveam lists versions in ascending order
        return matches[-1] if matches else None

    def template_exists_locally(self, storage: str, template_file: str) -> bool:
        result = self.runner.run(['pveam', 'list', storage])
        return result.ok and template_file in result.output

    def ensure_template(self, template: str) -> Optional[str]:
        """Ensure the template is downloaded, fetching it when missing.

        Args:
            template: Template prefix (e.g., 'debian-12-standard')

        Returns:
            Volume id for `pct create` ('<storage>:vztmpl/<file>'), or None on failure
        """
        storage = self.detect_template_storage()

        if self.runner.mock:
            volume = f"{storage}:vztmpl/{template}.tar.zst"
            logger.info(f"MOCK: Would ensure template {volume}")
            return volume

        template_file = self.resolve_template(template)
        if not template_file:
            # Catalog may never have been fetched on a fresh host
            self.runner.run(['pveam', 'update'])
            template_file = self.resolve_template(template)
        if not template_file:
            logger.error(f"No template matching '{template}' is available")
            return None

        volume = f"{storage}:vztmpl/{template_file}"
        if self.template_exists_locally(storage, template_file):
            logger.debug(f"Template {volume} already available")
            return volume

        logger.info(f"Downloading template {template_file} to {storage}...")
        self.runner.run(['pveam', 'update'])
        result = self.runner.run(['pveam', 'download', storage, template_file])
        if not result.ok:
            logger.error(f"✗ Failed to download template {template_file}")
            if result.output:
                logger.error(f"Error output: {result.tail()}")
            return None

        logger.info(f"✓ Template ready: {volume}")
        return volume
