"""
Resource type descriptors

Course, Internship, R&D Project, Career and IdeaForge submissions share one
workflow. Everything that differs between them (required fields, enum domains,
uniqueness, upload policy, lifecycle) lives here as data.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from app.registrations.config import StorageConfig


class ResourceType(str, Enum):
    COURSE = "course"
    INTERNSHIP = "internship"
    RD_PROJECT = "rd_project"
    CAREER = "career"
    IDEAFORGE = "ideaforge"


class RecordStatus(str, Enum):
    NOT_VIEWED = "Not Viewed"
    VIEWED = "Viewed"
    NEW = "New"
    REVIEWED = "Reviewed"
    INTERVIEW = "Interview"
    REJECTED = "Rejected"
    HIRED = "Hired"
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "rejected"


VIEW_STATUSES = (RecordStatus.NOT_VIEWED.value, RecordStatus.VIEWED.value)
CAREER_STATUSES = (
    RecordStatus.NEW.value,
    RecordStatus.REVIEWED.value,
    RecordStatus.INTERVIEW.value,
    RecordStatus.REJECTED.value,
    RecordStatus.HIRED.value,
)
IDEAFORGE_STATUSES = (
    RecordStatus.PENDING.value,
    RecordStatus.APPROVED.value,
    RecordStatus.DECLINED.value,
)

GENDERS = ("Male", "Female", "Other")
ACCESS_PREFERENCES = ("Full Access", "Flexible Access")
TEAM_TYPES = ("Team", "Individual")
EXPERIENCE_TYPES = ("fresher", "experienced")
IDEAFORGE_YEARS = ("1st Year", "2nd Year", "3rd Year", "4th Year", "Final Year")
IDEAFORGE_DOMAINS = (
    "Web Development",
    "Mobile App Development",
    "Artificial Intelligence & Machine Learning",
    "Data Science",
    "IoT",
    "Cybersecurity",
    "Blockchain",
    "Cloud Computing",
    "UI/UX Design",
    "Other",
)

PDF_TYPES = frozenset({"application/pdf"})
RESUME_EXTENSIONS = frozenset({".pdf", ".doc", ".docx"})
PROPOSAL_EXTENSIONS = frozenset({".pdf", ".doc", ".docx", ".ppt", ".pptx"})

# Written only by back-office actors, never by public submissions
ADMIN_FIELDS = frozenset({"status", "notes", "totalCost", "amountPaid", "rating", "interviewDate"})


@dataclass(frozen=True)
class UploadPolicy:
    field_name: str
    max_bytes: int
    directory: Optional[str] = None  # None means held in memory, inside the document
    content_types: FrozenSet[str] = frozenset()
    extensions: FrozenSet[str] = frozenset()
    required: bool = False
    rejection_message: str = "Only PDF files are allowed"

    @property
    def in_memory(self) -> bool:
        return self.directory is None

    def accepts(self, filename: str, content_type: Optional[str]) -> bool:
        if self.extensions:
            dot = filename.rfind(".")
            return dot != -1 and filename[dot:].lower() in self.extensions
        if self.content_types:
            return (content_type or "").lower() in self.content_types
        return True


@dataclass(frozen=True)
class ResourceTypeDescriptor:
    type: ResourceType
    display_name: str
    collection: str
    prefix: str
    required_fields: Tuple[str, ...]
    initial_status: str
    statuses: Tuple[str, ...]
    duplicate_fields: Tuple[str, ...] = ("email", "phone")
    unique_indexes: Tuple[str, ...] = ("email", "phone")
    sparse_indexes: Tuple[str, ...] = ()
    draft_collection: Optional[str] = None
    draft_prefix: Optional[str] = None
    upload: Optional[UploadPolicy] = None
    enums: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    patterns: Dict[str, Tuple[str, str]] = field(default_factory=dict)
    lengths: Dict[str, Tuple[int, int]] = field(default_factory=dict)
    date_fields: Tuple[str, ...] = ()
    date_windows: Dict[str, int] = field(default_factory=dict)  # field -> years ahead of today
    numeric_fields: Tuple[str, ...] = ("totalCost", "amountPaid")
    boolean_fields: Tuple[str, ...] = ("agreement",)
    admin_defaults: Dict[str, object] = field(default_factory=dict)
    access_field: Optional[str] = None
    synthesize_roll_number: bool = False
    referral_bearing: bool = False
    field_aliases: Dict[str, str] = field(default_factory=dict)
    draft_defaults: Dict[str, object] = field(default_factory=dict)
    sort_field: str = "createdAt"

    @property
    def supports_drafts(self) -> bool:
        return self.draft_collection is not None

    @property
    def file_field(self) -> Optional[str]:
        return self.upload.field_name if self.upload else None


STANDARD_ADMIN_DEFAULTS = {"notes": "", "totalCost": 0, "amountPaid": 0}
DRAFT_DEFAULTS = {"agreement": False, "accessPreference": "Full Access"}


def build_descriptors(storage: Optional[StorageConfig] = None) -> Dict[ResourceType, ResourceTypeDescriptor]:
    """Descriptors for every resource type, with upload limits taken from storage config"""
    storage = storage or StorageConfig()

    resume_pdf = dict(
        field_name="resume",
        max_bytes=storage.resume_max_bytes,
        content_types=PDF_TYPES,
    )

    course = ResourceTypeDescriptor(
        type=ResourceType.COURSE,
        display_name="Course",
        collection="register_courses",
        prefix="/RegisterCourse",
        draft_collection="partial_courses",
        draft_prefix="/PartialCourse",
        required_fields=(
            "fullName", "email", "phone", "gender", "city", "dob",
            "college", "degree", "department", "year", "rollNumber",
            "courseName", "courseDuration", "learningMode", "preferredTimeSlot", "courseLevel",
            "heardFrom", "agreement", "accessPreference",
        ),
        duplicate_fields=("email", "phone", "rollNumber"),
        initial_status=RecordStatus.NOT_VIEWED.value,
        statuses=VIEW_STATUSES,
        upload=UploadPolicy(directory=storage.course_dir, **resume_pdf),
        enums={"gender": GENDERS, "accessPreference": ACCESS_PREFERENCES},
        date_fields=("dob", "startDate"),
        admin_defaults=STANDARD_ADMIN_DEFAULTS,
        draft_defaults=DRAFT_DEFAULTS,
    )

    internship = ResourceTypeDescriptor(
        type=ResourceType.INTERNSHIP,
        display_name="Internship",
        collection="register_interns",
        prefix="/RegisterIntern",
        draft_collection="partial_interns",
        draft_prefix="/PartialIntern",
        required_fields=(
            "fullName", "email", "phone", "gender", "city", "dob",
            "college", "degree", "department", "year",
            "domain", "duration", "internshipType", "startDate", "interestReason", "skills",
            "agreement", "accessPreference",
        ),
        duplicate_fields=("email", "phone", "rollNumber"),
        unique_indexes=("email", "phone", "rollNumber"),
        sparse_indexes=("rollNumber",),
        initial_status=RecordStatus.NOT_VIEWED.value,
        statuses=VIEW_STATUSES,
        upload=UploadPolicy(directory=storage.intern_dir, required=True, **resume_pdf),
        enums={"gender": GENDERS, "accessPreference": ACCESS_PREFERENCES},
        date_fields=("dob", "startDate"),
        admin_defaults=STANDARD_ADMIN_DEFAULTS,
        draft_defaults=DRAFT_DEFAULTS,
        synthesize_roll_number=True,
    )

    rd_project = ResourceTypeDescriptor(
        type=ResourceType.RD_PROJECT,
        display_name="R&D Project",
        collection="rd_projects",
        prefix="/RDprojects",
        draft_collection="partial_rd_projects",
        draft_prefix="/partialRD",
        required_fields=(
            "fullName", "email", "phone", "gender", "city", "dob",
            "college", "degree", "department", "year",
            "domain", "projectTitle", "teamType", "accessPreference", "agreement",
        ),
        duplicate_fields=("email", "phone", "rollNumber"),
        unique_indexes=("email", "phone", "rollNumber"),
        sparse_indexes=("rollNumber",),
        initial_status=RecordStatus.NOT_VIEWED.value,
        statuses=VIEW_STATUSES,
        upload=UploadPolicy(
            field_name="proposal",
            max_bytes=storage.proposal_max_bytes,
            extensions=PROPOSAL_EXTENSIONS,
            rejection_message="Only PDF, DOC, DOCX, PPT and PPTX proposals are allowed",
        ),
        enums={
            "gender": GENDERS,
            "accessPreference": ACCESS_PREFERENCES,
            "teamType": TEAM_TYPES,
        },
        lengths={"projectTitle": (1, 500)},
        date_fields=("dob",),
        admin_defaults=STANDARD_ADMIN_DEFAULTS,
        access_field="projectAccess",
        synthesize_roll_number=True,
        field_aliases={"domain": "projectDomain"},
        draft_defaults={
            **DRAFT_DEFAULTS,
            "projectAccess": "Full Access (One-time payment)",
            "projectTitle": "Project Title Not Provided",
            "teamType": "Individual",
            "stage": "Idea",
        },
    )

    career = ResourceTypeDescriptor(
        type=ResourceType.CAREER,
        display_name="Career",
        collection="register_careers",
        prefix="/RegisterCareer",
        required_fields=(
            "fullName", "email", "phone", "city", "position", "experienceType",
            "highestQualification", "degree", "heardFrom", "interestReason",
        ),
        duplicate_fields=("email", "phone"),
        unique_indexes=("email",),
        initial_status=RecordStatus.NEW.value,
        statuses=CAREER_STATUSES,
        upload=UploadPolicy(
            field_name="resume",
            max_bytes=storage.resume_max_bytes,
            directory=storage.career_dir,
            extensions=RESUME_EXTENSIONS,
            required=True,
            rejection_message="Only PDF, DOC, and DOCX files are allowed",
        ),
        enums={"gender": GENDERS, "experienceType": EXPERIENCE_TYPES},
        date_fields=("interviewDate",),
        numeric_fields=("currentCTC", "expectedCTC", "rating", "totalCost", "amountPaid"),
        boolean_fields=(),
        admin_defaults=dict(STANDARD_ADMIN_DEFAULTS, rating=0, interviewDate=None),
    )

    ideaforge = ResourceTypeDescriptor(
        type=ResourceType.IDEAFORGE,
        display_name="IdeaForge",
        collection="ideaforge_participants",
        prefix="/Ideaforge",
        required_fields=(
            "name", "email", "phone", "degree", "department", "year",
            "domain", "ideaType", "finalDate", "gotReferral",
        ),
        duplicate_fields=("email", "phone"),
        unique_indexes=("email", "phone", "generatedReferralCode"),
        sparse_indexes=("generatedReferralCode",),
        initial_status=RecordStatus.PENDING.value,
        statuses=IDEAFORGE_STATUSES,
        enums={
            "year": IDEAFORGE_YEARS,
            "domain": IDEAFORGE_DOMAINS,
            "ideaType": ("existing", "own"),
            "gotReferral": ("yes", "no"),
        },
        patterns={
            "name": (r"^[A-Za-z\s]+$", "Name can only contain letters and spaces"),
            "email": (r"^[^\s@]+@[^\s@]+\.[^\s@]+$", "Please enter a valid email address"),
            "phone": (r"^[6-9]\d{9}$", "Please enter a valid 10-digit phone number starting with 6-9"),
        },
        lengths={
            "name": (2, 50),
            "degree": (2, 50),
            "department": (2, 50),
            "ideaDescription": (20, 500),
        },
        date_fields=("finalDate",),
        date_windows={"finalDate": 1},
        numeric_fields=(),
        boolean_fields=(),
        admin_defaults={},
        referral_bearing=True,
        sort_field="registrationDate",
    )

    return {d.type: d for d in (course, internship, rd_project, career, ideaforge)}


DESCRIPTORS = build_descriptors()


def get_descriptor(resource_type: ResourceType) -> ResourceTypeDescriptor:
    return DESCRIPTORS[resource_type]
