from monstats.models.wallet import Wallet

__all__ = [
    "Wallet",
]
