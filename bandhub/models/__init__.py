from bandhub.models.user import User
from bandhub.models.band import Band, BandMember
from bandhub.models.band_invitation import BandInvitation
from bandhub.models.band_application import BandApplication
from bandhub.models.user_index import UserBandIndexEntry
from bandhub.models.audit_log import BandAuditLog
