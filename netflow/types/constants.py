# netflow/types/constants.py

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# keccak256("Transfer(address,address,uint256)")
TRANSFER_EVENT_SIGNATURE = "Transfer(address,address,uint256)"
TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"

DEFAULT_TOKEN_DECIMALS = 18
