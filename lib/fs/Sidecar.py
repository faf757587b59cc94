"""
lib/fs/Sidecar.py

Purpose:
Holds the transient files editors drop next to whatever they edit (vim swap files, emacs lock files, backup copies) so they never reach the cluster.

Place in Architecture:
Lives beside the InodeTable, not inside it. Sidecar ids come from their own range, above every id the table can hand out. Sidecars are found only by direct lookup; directory listings never show them.

Interface:

	SidecarFile: one entry. Holds its content in memory.
	SidecarHandle: an open handle on a SidecarFile.
	SidecarRegistry(patterns=None): the name -> file map.
		IsSidecarName(name), Lookup(parent, name), Get(id), Create(parent, name), Remove(parent, name), RemoveUnder(parentIds).

TODOs/FIXMEs:
None.
"""

import os
import fnmatch
import itertools
import threading

from ..Errors import Invalid
from ..Utils import SIDECAR_ID_BASE

DEFAULT_SIDECAR_PATTERNS = [
	'*.swp',
	'*.swo',
	'*.swx',
	'*~',
	'.#*',
	'#*#',
	'4913', # vim checks whether it can create files with this name
]


class SidecarFile(object):
	def __init__(this, id, parent, name):
		this.id = id
		this.parent = parent
		this.name = name
		this.data = bytearray()
		this.lock = threading.RLock()

	def IsDirectory(this):
		return False


class SidecarHandle(object):
	direct_io = True
	keep_cache = False

	def __init__(this, sidecar, flags):
		this.sidecar = sidecar
		this.flags = flags

	def read(this, offset, length=None):
		with this.sidecar.lock:
			if (length is None):
				return bytes(this.sidecar.data[offset:])
			return bytes(this.sidecar.data[offset:offset + length])

	def write(this, offset, data):
		with this.sidecar.lock:
			buffer = this.sidecar.data
			if (this.flags & os.O_APPEND or offset is None):
				offset = len(buffer)
			if (offset > len(buffer)):
				buffer.extend(b"\0" * (offset - len(buffer)))
			buffer[offset:offset + len(data)] = data
			return len(data)

	def truncate(this, size):
		with this.sidecar.lock:
			del this.sidecar.data[size:]
			this.sidecar.data.extend(b"\0" * (size - len(this.sidecar.data)))

	def get_size(this):
		with this.sidecar.lock:
			return len(this.sidecar.data)

	def close(this):
		pass


class SidecarRegistry(object):
	def __init__(this, patterns=None):
		if (patterns is None):
			patterns = DEFAULT_SIDECAR_PATTERNS
		this.patterns = list(patterns)

		this.lock = threading.Lock()
		this.byName = {} # (parent id, name) -> SidecarFile
		this.byId = {}
		this.ids = itertools.count(SIDECAR_ID_BASE)

	def IsSidecarName(this, name):
		return any(fnmatch.fnmatchcase(name, pattern) for pattern in this.patterns)

	def IsSidecarId(this, id):
		return id >= SIDECAR_ID_BASE

	def Lookup(this, parent, name):
		with this.lock:
			return this.byName.get((parent, name))

	def Get(this, id):
		with this.lock:
			return this.byId.get(id)

	# Creating a sidecar that already exists returns the existing one, as O_CREAT without O_EXCL would.
	def Create(this, parent, name):
		if (not this.IsSidecarName(name)):
			raise Invalid(f"{name} is not an editor sidecar name")

		with this.lock:
			existing = this.byName.get((parent, name))
			if (existing is not None):
				return existing

			sidecar = SidecarFile(next(this.ids), parent, name)
			this.byName[(parent, name)] = sidecar
			this.byId[sidecar.id] = sidecar
			return sidecar

	# RETURNS True if something was removed.
	def Remove(this, parent, name):
		with this.lock:
			sidecar = this.byName.pop((parent, name), None)
			if (sidecar is None):
				return False
			del this.byId[sidecar.id]
			return True

	# Drop every sidecar that lives in one of the directories *parentIds*.
	# RETURNS how many were dropped.
	def RemoveUnder(this, parentIds):
		parentIds = set(parentIds)
		with this.lock:
			doomed = [key for key in this.byName if key[0] in parentIds]
			for key in doomed:
				del this.byId[this.byName.pop(key).id]
			return len(doomed)

	def __len__(this):
		with this.lock:
			return len(this.byName)
