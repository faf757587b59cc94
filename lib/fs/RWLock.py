import threading
from contextlib import contextmanager

# Many readers or one writer.
# Writers are preferred: once a writer is waiting, new readers queue behind it, so a steady stream of lookups can't starve a reconciliation.
class RWLock(object):
	def __init__(this):
		this.condition = threading.Condition(threading.Lock())
		this.readers = 0
		this.writer = False
		this.waitingWriters = 0

	def AcquireRead(this):
		with this.condition:
			while (this.writer or this.waitingWriters):
				this.condition.wait()
			this.readers += 1

	def ReleaseRead(this):
		with this.condition:
			this.readers -= 1
			if (not this.readers):
				this.condition.notify_all()

	def AcquireWrite(this):
		with this.condition:
			this.waitingWriters += 1
			try:
				while (this.writer or this.readers):
					this.condition.wait()
			finally:
				this.waitingWriters -= 1
			this.writer = True

	def ReleaseWrite(this):
		with this.condition:
			this.writer = False
			this.condition.notify_all()

	@contextmanager
	def Read(this):
		this.AcquireRead()
		try:
			yield
		finally:
			this.ReleaseRead()

	@contextmanager
	def Write(this):
		this.AcquireWrite()
		try:
			yield
		finally:
			this.ReleaseWrite()
