from dataclasses import dataclass


@dataclass
class RuntimeFlags:
    """
    Mutable runtime switches owned by one Engine instance.

    use_random_prices: serve random-walk prices instead of live quotes
    """
    use_random_prices: bool = False
