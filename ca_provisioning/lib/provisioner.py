"""Provision a certificate authority instance end to end."""

import logging

from .artifact_linker import ArtifactLinker
from .config import ProvisioningRequest, ServiceConfig
from .errors import StepExecutionError
from .executor import Executor
from .filesystem import DirectoryMaterializer, copy_tool_tree
from .generations import profile_for
from .layout import InstanceLayout
from .models import ProvisioningResult
from .vars_renderer import VarsRenderer
from .version_policy import resolve_for
from .workflow_builder import WorkflowBuilder

logger = logging.getLogger(__name__)


class CAProvisioner:
    """Runs the provisioning workflow for one request at a time.

    Re-running with the same request is safe: finished steps are skipped via
    their completion markers and publishing is idempotent.
    """

    def __init__(
        self,
        config: ServiceConfig,
        executor: Executor | None = None,
        linker: ArtifactLinker | None = None,
        renderer: VarsRenderer | None = None,
        materializer: DirectoryMaterializer | None = None,
    ) -> None:
        """Initialize provisioner with configuration and collaborators.

        Args:
            config: Service-wide configuration
            executor: Graph executor, defaults to one running real commands
            linker: Publisher for the keys alias and CRL copy
            renderer: Writer of the easy-rsa vars file
            materializer: Creator of the instance directory tree
        """
        self.config = config
        self.executor = executor or Executor()
        self.linker = linker or ArtifactLinker()
        self.renderer = renderer or VarsRenderer()
        self.materializer = materializer or DirectoryMaterializer()
        self.builder = WorkflowBuilder(config)

    def provision(self, request: ProvisioningRequest) -> ProvisioningResult:
        """Provision CA, server certificate, DH parameters, CRL and optional static key.

        Args:
            request: Validated provisioning parameters

        Returns:
            ProvisioningResult with the execution report and stable paths

        Raises:
            ConfigurationError: If the tool version or algorithm is unsupported
            StepExecutionError: If a step fails or times out
            PublishError: If the keys alias or CRL copy cannot be created
        """
        generation = resolve_for(self.config.easyrsa_version, request.key_algorithm)
        profile = profile_for(generation)
        layout = InstanceLayout(self.config.base_dir, request.name)
        logger.info(
            "Provisioning %s with easy-rsa %s (%s)",
            request.name,
            self.config.easyrsa_version,
            generation.value,
        )

        self.materializer.ensure(layout.root, self.config.dir_mode, self.config.group)
        copy_tool_tree(self.config.easyrsa_source, layout.easyrsa_dir, profile.entrypoint)
        self.renderer.render(request, generation, layout, self.config.easyrsa_version)

        graph = self.builder.build(request, generation)
        report = self.executor.run(graph)
        if not report.succeeded:
            raise StepExecutionError(report)

        published = self.linker.publish(layout)
        logger.info("Provisioned %s", request.name)

        return ProvisioningResult(
            instance=request.name,
            generation=generation,
            report=report,
            ca_cert_path=profile.ca_cert(layout),
            server_key_path=profile.server_key(layout, request.common_name),
            crl_path=layout.crl_path,
            keys_alias=layout.keys_alias,
            published=published,
        )
