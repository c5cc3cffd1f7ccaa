"""Build the provisioning task graph for one CA instance."""

import logging
import shlex
from pathlib import Path

from .config import KeyAlgorithm, ProvisioningRequest, ServiceConfig
from .generations import GenerationProfile, profile_for
from .layout import InstanceLayout
from .task_graph import (
    CertificateValid,
    CompletionPredicate,
    MarkerExists,
    MarkerNewerThan,
    StepSpec,
    TaskGraph,
)
from .version_policy import ProtocolGeneration

logger = logging.getLogger(__name__)

LINK_OPENSSL_CNF = "link-openssl-cnf"
INIT_PKI_AND_CA = "init-pki-and-ca"
SERVER_CERTIFICATE = "server-certificate"
DIFFIE_HELLMAN_PARAMS = "diffie-hellman-params"
CERTIFICATE_REVOCATION_LIST = "certificate-revocation-list"
STATIC_PRESHARED_KEY = "static-preshared-key"


class WorkflowBuilder:
    """Turns a request and a resolved generation into a TaskGraph.

    Shared topology:
        [link-openssl-cnf] -> init-pki-and-ca -> server-certificate
        server-certificate -> certificate-revocation-list (reissued when the CA
            certificate is newer than the published CRL)
        server-certificate -> [static-preshared-key]
    plus diffie-hellman-params for RSA keys, placed before CA initialization
    (Legacy) or after the server certificate (Modern).
    """

    def __init__(self, config: ServiceConfig) -> None:
        self.config = config

    def build(self, request: ProvisioningRequest, generation: ProtocolGeneration) -> TaskGraph:
        """Build and validate the graph.

        Raises:
            TaskGraphError: If the generation is unknown or the graph is malformed
        """
        profile = profile_for(generation)
        layout = InstanceLayout(self.config.base_dir, request.name)
        graph = TaskGraph(request.name)
        needs_dh = request.key_algorithm is KeyAlgorithm.RSA

        ca_requires: list[str] = []
        if self.config.link_openssl_cnf:
            graph.add(self._link_openssl_cnf(request, profile, layout))
            ca_requires.append(LINK_OPENSSL_CNF)

        if needs_dh and not profile.dh_follows_server_certificate:
            graph.add(self._dh_params(request, profile, layout, requires=()))
            ca_requires.append(DIFFIE_HELLMAN_PARAMS)

        graph.add(
            self._step(
                request,
                layout,
                name=INIT_PKI_AND_CA,
                command=profile.init_ca_command(request),
                completion=self._certificate_marker(
                    profile.ca_cert(layout), fallback=profile.ca_key(layout)
                ),
                requires=tuple(ca_requires),
                env=profile.init_ca_env(request),
            )
        )
        graph.add(
            self._step(
                request,
                layout,
                name=SERVER_CERTIFICATE,
                command=profile.server_certificate_command(request),
                completion=self._certificate_marker(
                    profile.server_cert(layout, request.common_name),
                    fallback=profile.server_key(layout, request.common_name),
                ),
                requires=(INIT_PKI_AND_CA,),
            )
        )

        if needs_dh and profile.dh_follows_server_certificate:
            graph.add(self._dh_params(request, profile, layout, requires=(SERVER_CERTIFICATE,)))

        graph.add(
            self._step(
                request,
                layout,
                name=CERTIFICATE_REVOCATION_LIST,
                command=profile.crl_command(layout),
                completion=MarkerNewerThan(layout.crl_path, reference=profile.ca_cert(layout)),
                requires=(SERVER_CERTIFICATE,),
            )
        )

        if request.tls_static_key:
            graph.add(
                self._step(
                    request,
                    layout,
                    name=STATIC_PRESHARED_KEY,
                    command=profile.static_key_command(),
                    completion=MarkerExists(layout.static_key),
                    requires=(SERVER_CERTIFICATE,),
                )
            )

        graph.validate()
        logger.info(
            "Built %s graph for %s: %s", generation.value, request.name, ", ".join(graph.names())
        )
        return graph

    def _certificate_marker(self, cert_path: Path, fallback: Path) -> CompletionPredicate:
        # Key file is the marker unless issued certificates are verified
        if self.config.verify_certificates:
            return CertificateValid(cert_path)
        return MarkerExists(fallback)

    def _link_openssl_cnf(
        self, request: ProvisioningRequest, profile: GenerationProfile, layout: InstanceLayout
    ) -> StepSpec:
        target = profile.openssl_cnf_target(self.config.easyrsa_version)
        return self._step(
            request,
            layout,
            name=LINK_OPENSSL_CNF,
            command=f"ln -sf {shlex.quote(target)} openssl.cnf",
            completion=MarkerExists(layout.openssl_cnf),
        )

    def _dh_params(
        self,
        request: ProvisioningRequest,
        profile: GenerationProfile,
        layout: InstanceLayout,
        requires: tuple[str, ...],
    ) -> StepSpec:
        return self._step(
            request,
            layout,
            name=DIFFIE_HELLMAN_PARAMS,
            command=profile.dh_command(request),
            completion=MarkerExists(profile.dh_params(layout, request)),
            requires=requires,
            timeout=self.config.long_step_timeout,
        )

    def _step(
        self,
        request: ProvisioningRequest,
        layout: InstanceLayout,
        name: str,
        command: str,
        completion: CompletionPredicate,
        requires: tuple[str, ...] = (),
        env: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> StepSpec:
        if timeout is None:
            timeout = self.config.step_timeout
        return StepSpec(
            name=name,
            instance=request.name,
            command=command,
            cwd=layout.easyrsa_dir,
            completion=completion,
            requires=requires,
            env=env or {},
            timeout=timeout if timeout > 0 else None,
        )
