"""
Facilitator bootstrap

Wires configuration into a running facilitator:
clients -> registry -> signer -> scheme -> facilitator -> tracker -> logging hooks
"""

import logging

from x402_facilitator.chains import ChainRegistry, Web3ChainClient
from x402_facilitator.config import FacilitatorConfig, NetworkConfig
from x402_facilitator.facilitator.x402_facilitator import X402Facilitator
from x402_facilitator.hooks import (
    SettleContext,
    SettleFailureContext,
    SettleResultContext,
    VerifyContext,
    VerifyFailureContext,
    VerifyResultContext,
)
from x402_facilitator.mechanisms.evm import ExactEvmScheme
from x402_facilitator.signers.facilitator import EvmFacilitatorSigner
from x402_facilitator.tracking import VerificationStore, VerificationTracker

logger = logging.getLogger(__name__)


def attach_logging_hooks(facilitator: X402Facilitator) -> X402Facilitator:
    """Log every lifecycle event of *facilitator*"""

    def before_verify(context: VerifyContext) -> None:
        logger.info(
            "Before verify",
            extra={"network": context.requirements.network, "scheme": context.requirements.scheme},
        )

    def after_verify(context: VerifyResultContext) -> None:
        logger.info("After verify: payer=%s", context.result.payer)

    def verify_failure(context: VerifyFailureContext) -> None:
        logger.info("Verify failure: %s", context.reason)

    def before_settle(context: SettleContext) -> None:
        logger.info(
            "Before settle",
            extra={"network": context.requirements.network, "scheme": context.requirements.scheme},
        )

    def after_settle(context: SettleResultContext) -> None:
        logger.info(
            "After settle: transaction=%s network=%s",
            context.result.transaction,
            context.result.network,
        )

    def settle_failure(context: SettleFailureContext) -> None:
        logger.warning("Settle failure: %s", context.reason)

    return (
        facilitator.on_before_verify(before_verify)
        .on_after_verify(after_verify)
        .on_verify_failure(verify_failure)
        .on_before_settle(before_settle)
        .on_after_settle(after_settle)
        .on_settle_failure(settle_failure)
    )


def build_registry(config: FacilitatorConfig) -> ChainRegistry:
    """Create one web3 client per enabled network

    Raises:
        UnknownNetworkError: If an RPC URL is configured for a network outside
            the network table
    """
    registry = ChainRegistry()
    for network, rpc_url in config.rpc_urls.items():
        info = NetworkConfig.get(network)
        registry.register(
            network,
            Web3ChainClient.from_private_key(
                network,
                rpc_url,
                config.private_key,
                poa=info.poa,
            ),
        )
    return registry


def build_facilitator(
    config: FacilitatorConfig,
    store: VerificationStore | None = None,
    registry: ChainRegistry | None = None,
    extensions: tuple[str, ...] = (),
) -> tuple[X402Facilitator, VerificationTracker]:
    """
    Assemble a facilitator from configuration.

    Args:
        config: Startup settings
        store: Verification store (in-memory by default)
        registry: Pre-built chain registry (built from ``config`` by default)
        extensions: Extension keys to advertise in /supported

    Returns:
        The facilitator and the tracker guarding its settlements
    """
    if registry is None:
        registry = build_registry(config)
    signer = EvmFacilitatorSigner(
        registry,
        default_network=config.default_network,
        receipt_timeout=config.receipt_timeout,
    )
    scheme = ExactEvmScheme(
        signer,
        deploy_erc4337_with_eip6492=config.deploy_erc4337_with_eip6492,
    )

    facilitator = X402Facilitator(settle_timeout=config.settle_timeout)
    facilitator.register(registry.networks(), scheme)
    for extension in extensions:
        facilitator.register_extension(extension)

    tracker = VerificationTracker(store, freshness_window=config.verification_timeout)
    tracker.attach(facilitator)
    attach_logging_hooks(facilitator)

    logger.info(
        "Facilitator ready: networks=%s default=%s signers=%s",
        ", ".join(registry.networks()),
        config.default_network,
        ", ".join(signer.get_addresses()),
    )
    return facilitator, tracker
