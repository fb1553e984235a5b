"""
Cloud and infrastructure CLIs — terraform, kubectl, AWS, Azure.
"""

from __future__ import annotations

from devbox.core.engine import actions, probes
from devbox.core.models.config import ProvisionConfig
from devbox.core.models.step import Step

_APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


def cloud_steps(config: ProvisionConfig) -> list[Step]:
    return [
        Step(
            name="terraform",
            description="HashiCorp Terraform",
            precondition=probes.command_available("terraform"),
            action=actions.sequence(
                actions.apt_repository(
                    key_url="https://apt.releases.hashicorp.com/gpg",
                    keyring="/usr/share/keyrings/hashicorp-archive-keyring.gpg",
                    source="deb [signed-by={keyring}] https://apt.releases.hashicorp.com {codename} main",
                    list_file="/etc/apt/sources.list.d/hashicorp.list",
                ),
                actions.apt_install(["terraform"]),
            ),
            reads=("PATH",),
            writes=("apt",),
            env=_APT_ENV,
        ),
        Step(
            name="kubectl",
            description="Kubernetes CLI",
            precondition=probes.command_available("kubectl"),
            action=actions.shell(
                'cd /tmp && curl -fsSLO "https://dl.k8s.io/release/'
                '$(curl -fsSL https://dl.k8s.io/release/stable.txt)/bin/linux/amd64/kubectl"'
                " && install -o root -g root -m 0755 kubectl /usr/local/bin/kubectl && rm -f kubectl",
                sudo=True,
            ),
            reads=("PATH",),
            writes=("/usr/local/bin",),
        ),
        Step(
            name="aws-cli",
            description="AWS CLI v2",
            precondition=probes.command_available("aws"),
            action=actions.shell(
                "cd /tmp && curl -fsSL https://awscli.amazonaws.com/awscli-exe-linux-x86_64.zip"
                " -o awscliv2.zip && unzip -qo awscliv2.zip && ./aws/install --update"
                " && rm -rf awscliv2.zip aws",
                sudo=True,
            ),
            reads=("PATH",),
            writes=("/usr/local/aws-cli",),
        ),
        Step(
            name="azure-cli",
            description="Azure CLI",
            precondition=probes.command_available("az"),
            action=actions.shell("curl -sL https://aka.ms/InstallAzureCLIDeb | bash", sudo=True),
            reads=("PATH",),
            writes=("apt",),
            env=_APT_ENV,
        ),
    ]
