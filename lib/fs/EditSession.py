"""
lib/fs/EditSession.py

Purpose:
Buffers one open handle's view of an object document between open and release, so that an editor's many partial writes become a single replace of the remote object.

Place in Architecture:
Owned by the KubeFS adapter, one per open file handle on an OBJECT node. Never touches the InodeTable or the network; the adapter fetches the document before creating the session and commits the buffer when the session is flushed or released.

Interface:

	__init__(nodeId, path, flags, document=None): Validates the open flags and loads the document into the buffer.
	close(): Marks the session closed. Any further use raises EBADF.
	read(offset, length): bytes from the buffer.
	write(offset, data): writes into the buffer. RETURNS the byte count.
	truncate(size): shrinks or zero-extends the buffer.
	get_size(): current buffer length.
	GetDocument(): the buffer decoded as a document string.
	IsDirty() / MarkClean(): whether the buffer differs from what the remote last accepted.

TODOs/FIXMEs:
None.
"""

import os
import errno
import threading

from ..Errors import Invalid


class EditSession(object):
	"""
	Buffered view of one object document. There may be several sessions
	on the same object; the last one to commit wins.
	"""

	direct_io = True
	keep_cache = False

	def __init__(this, nodeId, path, flags, document=None):
		this.nodeId = nodeId
		this.path = path # (namespace, kind, name), captured at open
		this.lock = threading.RLock()
		this.flags = flags
		this.closed = False
		this.dirty = False

		accmode = this.flags & (os.O_RDONLY | os.O_RDWR | os.O_WRONLY)
		this.writeable = accmode in (os.O_RDWR, os.O_WRONLY)
		this.readable = accmode in (os.O_RDWR, os.O_RDONLY)
		this.append = bool(this.flags & os.O_APPEND)

		if (this.flags & os.O_CREAT) and not this.writeable:
			raise Invalid("O_CREAT without writeable file")
		if (this.flags & os.O_TRUNC) and not this.writeable:
			raise Invalid("O_TRUNC without writeable file")
		if (this.flags & os.O_APPEND) and not this.writeable:
			raise Invalid("O_APPEND without writeable file")

		if (document is None):
			document = ""
		this.buffer = bytearray(document.encode('utf-8'))

		if (this.flags & os.O_TRUNC):
			this.truncate(0)

	def _CheckOpen(this):
		if (this.closed):
			raise Invalid("Operation on a closed file", errno.EBADF)

	def close(this):
		with this.lock:
			this._CheckOpen()
			this.closed = True

	def read(this, offset, length=None):
		with this.lock:
			this._CheckOpen()
			if (not this.readable):
				raise Invalid("File not readable", errno.EBADF)
			if (length is None):
				return bytes(this.buffer[offset:])
			return bytes(this.buffer[offset:offset + length])

	def write(this, offset, data):
		with this.lock:
			this._CheckOpen()
			if (not this.writeable):
				raise Invalid("File not writeable", errno.EBADF)
			if (this.append or offset is None):
				offset = len(this.buffer)
			if (offset > len(this.buffer)):
				this.buffer.extend(b"\0" * (offset - len(this.buffer)))
			this.buffer[offset:offset + len(data)] = data
			this.dirty = True
			return len(data)

	def truncate(this, size):
		with this.lock:
			this._CheckOpen()
			if (not this.writeable):
				raise Invalid("File not writeable", errno.EBADF)
			if (size == len(this.buffer)):
				return
			if (size < len(this.buffer)):
				del this.buffer[size:]
			else:
				this.buffer.extend(b"\0" * (size - len(this.buffer)))
			this.dirty = True

	def get_size(this):
		with this.lock:
			return len(this.buffer)

	def GetDocument(this):
		with this.lock:
			try:
				return this.buffer.decode('utf-8')
			except UnicodeDecodeError as e:
				raise Invalid(f"Document for {'/'.join(this.path)} is not valid UTF-8: {e}")

	def IsDirty(this):
		with this.lock:
			return this.dirty

	# Only call this with the exact document that was committed.
	# Writes that landed after GetDocument keep the session dirty.
	def MarkClean(this, document):
		with this.lock:
			if (this.buffer == document.encode('utf-8')):
				this.dirty = False
