#
# Copyright (c) Granulate. All rights reserved.
# Licensed under the AGPL3 License. See LICENSE.md in the project root for license information.
#


class UnknownInstanceTypeError(Exception):
    def __init__(self, instance_class: str):
        super().__init__(f"UnknownInstanceType: {instance_class}")
        self.instance_class = instance_class


class MemoryCatalogLoadError(Exception):
    pass


class ConfigError(Exception):
    pass


class ScrapeSettingsFrozenError(Exception):
    pass


class SessionUnavailableError(Exception):
    def __init__(self, region: str, instance: str, reason: str):
        super().__init__(f"No session available for instance {instance!r} in {region!r}: {reason}")
        self.region = region
        self.instance = instance
