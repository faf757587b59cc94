"""
lib/Errors.py

Purpose:
Defines the error taxonomy raised by the filesystem core and the remote client.

Place in Architecture:
Every layer raises these. They are IOErrors carrying an errno, so the FUSE layer can turn any of them into a negative errno without a lookup table.

Interface:

	KubeFSError(message, code=None): Base class. EIO unless a code is given.
	NotFound: ENOENT. The id or name does not resolve.
	Unavailable: EAGAIN. The remote call failed or timed out.
	Invalid: EINVAL. Malformed document or a disallowed operation. Callers may pass a more specific errno (ENOTDIR, EPERM, EBADF).
	AlreadyExists: EEXIST. A kind of Invalid.
	PermissionDenied: EACCES. Passed through from the remote.

TODOs/FIXMEs:
None.
"""

import errno


class KubeFSError(IOError):
	code = errno.EIO

	def __init__(this, message, code=None):
		if (code is None):
			code = this.code
		super().__init__(code, message)


class NotFound(KubeFSError):
	code = errno.ENOENT


# Remote failures leave every cache untouched; the caller may simply retry.
class Unavailable(KubeFSError):
	code = errno.EAGAIN


class Invalid(KubeFSError):
	code = errno.EINVAL


class AlreadyExists(Invalid):
	code = errno.EEXIST


class PermissionDenied(KubeFSError):
	code = errno.EACCES
