# Copyright 2017-2020 Linaro Limited
# Copyright 2019-2024 Arm Limited
# Copyright 2020-2026 STMicroelectronics
#
# SPDX-License-Identifier: Apache-2.0
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
Errors raised while building a TLV area.
"""


class TLVError(Exception):
    pass


class ConfigurationError(TLVError):
    """Unknown protection scheme or record kind."""
    pass


class KeyLoadError(TLVError):
    """Signing key is missing, malformed or of the wrong type."""
    pass


class SigningError(TLVError):
    """The signing primitive itself failed."""
    pass


class InvariantViolation(TLVError):
    """A record length disagrees with the size declared by resolve()."""
    pass


class GeneratorFinalizedError(TLVError):
    pass


class TLVFormatError(TLVError):
    pass
