"""
Exceptions for Vortex Shield
Everything raised on purpose derives from VortexShieldError so callers have one catch-all
"""


class VortexShieldError(Exception):
    # general container for errors
    pass


class FormatError(VortexShieldError):
    # raised when the magic signature (or algorithm id) is not ours
    pass


class UnsupportedVersionError(VortexShieldError):
    # raised when the version byte is outside the known set
    pass


class TruncatedContainerError(VortexShieldError):
    # raised when the header or a chunk frame is shorter than declared
    pass


class PayloadNotFoundError(VortexShieldError):
    # raised when the stego delimiter is absent from the scan window
    pass


class KeyfileRequiredError(VortexShieldError):
    # raised before key derivation when the container is keyfile-bound and no keyfile was given
    pass


class KeyfileError(VortexShieldError):
    # raised when a keyfile cannot be read
    pass


class AuthenticationFailure(VortexShieldError):
    # raised on an AES-GCM tag mismatch (wrong password / keyfile, or corrupted bytes)
    pass


class PaddingError(VortexShieldError):
    # raised on bad PKCS7 padding after AES-CBC; CBC has no tag so this is not an auth check
    pass


class DecodeFailure(VortexShieldError):
    # raised when decompression is fed data that is not gzip
    pass
