# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Exceptions raised by the registry client and the wizard.
"""


class D2CError(Exception):
    """Base exception for d2c errors."""

    pass


class RegistryError(D2CError):
    """A registry or Docker Hub call failed."""

    pass


class NetworkError(RegistryError):
    """Transport failure or non-success HTTP status."""

    pass


class DecodeError(RegistryError):
    """Response body is not the JSON shape we expect."""

    pass


class ValidationError(D2CError):
    """User input was rejected by a wizard step."""

    pass
