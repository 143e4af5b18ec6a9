from eth_utils import is_address, to_checksum_address


def validate_eth_address(address: str, param_name: str = "address") -> str:
    """Validate and return checksum ethereum address"""
    if not address or not isinstance(address, str):
        raise ValueError(
            f"Invalid {param_name}: address must be a non-empty string"
        )
    if not is_address(address):
        raise ValueError(
            f"Invalid {param_name}: {address} is not a valid Ethereum address"
        )
    return to_checksum_address(address)


def validate_block_number(block_number: int) -> int:
    """Validate a block number"""
    if block_number <= 0:
        raise ValueError("Block number must be a positive integer")
    return block_number


def validate_slot(slot: int) -> int:
    """Validate a storage slot index"""
    if not 0 <= slot < 2**256:
        raise ValueError(f"Invalid slot: {slot} is not a uint256")
    return slot
