import click
from eth_utils import to_checksum_address

from deployment.constants import MAX_FEE_PERCENT


class MinInt(click.ParamType):
    name = "minint"

    def __init__(self, min_value):
        self.min_value = min_value

    def convert(self, value, param, ctx):
        try:
            ivalue = int(value)
        except ValueError:
            self.fail(f"{value} is not a valid integer", param, ctx)
        if ivalue < self.min_value:
            self.fail(
                f"{value} is less than the minimum allowed value of {self.min_value}", param, ctx
            )
        return ivalue


class Percentage(MinInt):
    name = "percentage"

    def __init__(self, max_value=MAX_FEE_PERCENT):
        super().__init__(min_value=0)
        self.max_value = max_value

    def convert(self, value, param, ctx):
        ivalue = super().convert(value, param, ctx)
        if ivalue > self.max_value:
            self.fail(
                f"{value} is more than the maximum allowed value of {self.max_value}", param, ctx
            )
        return ivalue


class ChecksumAddress(click.ParamType):
    name = "checksum_address"

    def convert(self, value, param, ctx):
        try:
            value = to_checksum_address(value=value)
        except ValueError:
            self.fail(f"{value} is not a valid ethereum address", param, ctx)
        else:
            return value
