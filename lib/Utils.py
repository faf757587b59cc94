import struct

from cryptography.hazmat.primitives import hashes

# Node ids live in [FIRST_NODE_ID, SIDECAR_ID_BASE).
# 0 is never a valid inode and 1 is reserved for the root.
FIRST_NODE_ID = 2
SIDECAR_ID_BASE = 1 << 62

_NONPATH = b"//\x00" # cannot occur in a name


# Derive the id of a node from where it sits in the tree.
# The same (parent, level, name) always yields the same id, regardless of when or in what order it was inserted.
# *attempt* is only non-zero when the caller has to step past a collision.
# RETURNS an int in [FIRST_NODE_ID, SIDECAR_ID_BASE).
def NodeId(parentId, level, name, attempt=0):
	digest = hashes.Hash(hashes.SHA256())
	digest.update(struct.pack('>QB', parentId, level.value))
	digest.update(_NONPATH)
	digest.update(name.encode('utf-8'))
	if (attempt):
		digest.update(_NONPATH)
		digest.update(struct.pack('>I', attempt))

	value = struct.unpack('>Q', digest.finalize()[:8])[0] % SIDECAR_ID_BASE
	if (value < FIRST_NODE_ID):
		return NodeId(parentId, level, name, attempt + 1)
	return value


# Split a fuse path into its components.
# "/" yields an empty list.
def SplitPath(path):
	return [segment for segment in path.split('/') if segment]


def udirname(path):
	return "/".join(path.rstrip('/').split("/")[:-1]) or "/"


def ubasename(path):
	return path.rstrip('/').split("/")[-1]
