"""
Static step registries for the parent and school-admin surveys.

Registry order is the default linear traversal order.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from enum import Enum


class StepType(str, Enum):
    """Kinds of survey step."""

    GATE = "gate"
    VOICE = "voice"
    CHECKBOX = "checkbox"
    RANKING = "ranking"
    FORM = "form"
    TEXT = "text"
    CHOICE = "choice"
    EMAIL = "email"
    THANK_YOU = "thank-you"


@dataclass(frozen=True)
class StepDefinition:
    """One entry of a step registry."""

    id: str
    path: str
    type: StepType
    title: str
    description: str | None = None
    has_voice: bool = False

    @property
    def step_number(self) -> int | None:
        """Integer step number for numbered steps ("4" -> 4), else None."""
        return int(self.id) if self.id.isdigit() else None


@dataclass(frozen=True)
class Option:
    """A selectable value with its display label."""

    value: str
    label: str


class StepRegistry:
    """Immutable ordered list of step definitions."""

    def __init__(self, steps: Sequence[StepDefinition]) -> None:
        if len(steps) < 2:
            raise ValueError("A step registry needs at least two steps")
        ids = [step.id for step in steps]
        if len(set(ids)) != len(ids):
            raise ValueError("Step ids must be unique within a registry")
        self._steps: tuple[StepDefinition, ...] = tuple(steps)
        self._positions = {step.id: i for i, step in enumerate(self._steps)}

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[StepDefinition]:
        return iter(self._steps)

    def __getitem__(self, position: int) -> StepDefinition:
        return self._steps[position]

    def __contains__(self, step_id: object) -> bool:
        return step_id in self._positions

    @property
    def steps(self) -> tuple[StepDefinition, ...]:
        return self._steps

    @property
    def first(self) -> StepDefinition:
        return self._steps[0]

    @property
    def last(self) -> StepDefinition:
        return self._steps[-1]

    def index(self, step_id: str) -> int:
        """Position of a step, or -1 when the id is unknown."""
        return self._positions.get(step_id, -1)

    def get(self, step_id: str) -> StepDefinition | None:
        position = self.index(step_id)
        return self._steps[position] if position >= 0 else None

    def next(self, step_id: str) -> StepDefinition | None:
        """Following step in registry order; None at the end or for unknown ids."""
        position = self.index(step_id)
        if position == -1 or position >= len(self._steps) - 1:
            return None
        return self._steps[position + 1]

    def previous(self, step_id: str) -> StepDefinition | None:
        """Preceding step; None for the first step or unknown ids."""
        position = self.index(step_id)
        if position <= 0:
            return None
        return self._steps[position - 1]

    def progress(self, step_id: str) -> int:
        """Completion percentage 0..100; 0 for unknown ids."""
        position = self.index(step_id)
        if position == -1:
            return 0
        # round() is banker's rounding; match round-half-up
        return int(position / (len(self._steps) - 1) * 100 + 0.5)

    def by_path(self, path: str) -> StepDefinition | None:
        for step in self._steps:
            if step.path == path:
                return step
        return None


def _options(*pairs: tuple[str, str]) -> tuple[Option, ...]:
    return tuple(Option(value, label) for value, label in pairs)


# Parent survey

PARENT_STEPS = StepRegistry(
    [
        StepDefinition(
            "pain-check",
            "/survey/pain-check",
            StepType.GATE,
            "Before we continue...",
            "We need to make sure this survey is right for you.",
        ),
        StepDefinition(
            "1",
            "/survey/step/1",
            StepType.VOICE,
            "Tell us what's going on",
            "What is the most challenging aspect of your child's relationship with screens or technology?",
            has_voice=True,
        ),
        StepDefinition(
            "2",
            "/survey/step/2",
            StepType.CHECKBOX,
            "Have you experienced any of these issues?",
            "Select all that apply to your family.",
        ),
        StepDefinition(
            "3",
            "/survey/step/3",
            StepType.RANKING,
            "Rank your pain points",
            "Drag to reorder these from most painful (top) to least painful (bottom).",
        ),
        StepDefinition(
            "4",
            "/survey/step/4",
            StepType.VOICE,
            "Tell us more about why these are painful",
            "Can you elaborate on why those were the most painful problems? How urgent is solving them?",
            has_voice=True,
        ),
        StepDefinition(
            "5",
            "/survey/step/5",
            StepType.VOICE,
            "What have you tried?",
            "Tell us what solutions you've tried, what happened, and how much you've spent.",
            has_voice=True,
        ),
        StepDefinition(
            "6",
            "/survey/step/6",
            StepType.VOICE,
            "Switching Concerns & Motivation",
            "What would make switching hard? And what would make you willing to switch TODAY?",
            has_voice=True,
        ),
        StepDefinition(
            "7",
            "/survey/step/7",
            StepType.CHECKBOX,
            "What would you hope your child's phone provides?",
            "Select the benefits that matter most to you.",
        ),
        StepDefinition(
            "8",
            "/survey/step/8",
            StepType.FORM,
            "Tell us about your family",
            "Help us understand your family's situation.",
            has_voice=True,
        ),
        StepDefinition(
            "9",
            "/survey/step/9",
            StepType.CHECKBOX,
            "Where do you look for parenting advice?",
            "Select all the places where you look for advice online.",
        ),
        StepDefinition(
            "10",
            "/survey/step/10",
            StepType.CHECKBOX,
            "Price Willingness",
            "Select all the price ranges you would be willing to pay if this phone solved your child's device problems.",
        ),
        StepDefinition(
            "11",
            "/survey/step/11",
            StepType.TEXT,
            "Why did you click?",
            "Was there anything that made you almost not click?",
        ),
        StepDefinition(
            "12",
            "/survey/step/12",
            StepType.TEXT,
            "Anything else?",
            "Is there anything else you'd like us to know?",
        ),
        StepDefinition(
            "email",
            "/survey/email",
            StepType.EMAIL,
            "Stay connected",
            "We'd love to keep you updated on our progress.",
        ),
        StepDefinition(
            "thank-you",
            "/survey/thank-you",
            StepType.THANK_YOU,
            "Thank you",
            "Your answers will directly shape what we build.",
        ),
    ]
)

PAIN_CHECK_OPTIONS = _options(
    ("crisis", "Crisis Level - I need a solution immediately"),
    ("yes", "Yes, this is a regular source of stress and problems"),
    ("sometimes", "Sometimes"),
    ("no", "No"),
)

ISSUES_OPTIONS = _options(
    ("addiction", "Phone/screen addiction"),
    ("sleep", "Sleep problems from screen use"),
    ("focus", "Difficulty focusing"),
    ("mood", "Mood changes or irritability"),
    ("social-media", "Social media issues"),
    ("gaming", "Excessive gaming"),
    ("inappropriate", "Access to inappropriate content"),
    ("cyberbullying", "Cyberbullying"),
    ("homework", "Not doing homework"),
    ("family-time", "Less family time"),
    ("outdoor", "Less outdoor activity"),
)

BENEFITS_OPTIONS = _options(
    ("safety", "Safety and location tracking"),
    ("communication", "Easy communication with family"),
    ("limited-apps", "Limited app access"),
    ("screen-time", "Built-in screen time limits"),
    ("educational", "Educational content only"),
    ("no-social", "No social media"),
    ("parental-control", "Strong parental controls"),
    ("durable", "Durable design for kids"),
)

ADVICE_SOURCES_OPTIONS = _options(
    ("facebook", "Facebook Groups"),
    ("reddit", "Reddit (r/parenting, etc.)"),
    ("instagram", "Instagram"),
    ("pediatrician", "Pediatrician"),
    ("friends", "Friends/Family"),
    ("blogs", "Parenting Blogs"),
    ("youtube", "YouTube"),
    ("other", "Other"),
)

PRICE_WILLINGNESS_OPTIONS = _options(
    ("1000-plus", "$1,000+"),
    ("750-1000", "$750 - $1,000"),
    ("500-750", "$500 - $750"),
    ("250-500", "$250 - $500"),
    ("under-250", "$250 or below"),
)

INCOME_OPTIONS = _options(
    ("under-50k", "Under $50k"),
    ("50k-100k", "$50k - $100k"),
    ("100k-150k", "$100k - $150k"),
    ("150k-250k", "$150k - $250k"),
    ("250k-plus", "$250k+"),
)


# School administrator survey

SCHOOL_ADMIN_STEPS = StepRegistry(
    [
        StepDefinition(
            "disruption-gate",
            "/school-admin/disruption-gate",
            StepType.GATE,
            "Before we begin...",
            "How often do student phones or personal devices cause disruption or concern at your school?",
        ),
        StepDefinition(
            "email",
            "/school-admin/email",
            StepType.EMAIL,
            "Stay Connected",
            "Where should we send information about solutions for your school?",
        ),
        StepDefinition(
            "1",
            "/school-admin/step/1",
            StepType.TEXT,
            "What caught your attention?",
            "What made you want to take this survey today?",
        ),
        StepDefinition(
            "2",
            "/school-admin/step/2",
            StepType.VOICE,
            "The Biggest Challenge",
            "What is the single most challenging thing about student phones in your school right now?",
            has_voice=True,
        ),
        StepDefinition(
            "3",
            "/school-admin/step/3",
            StepType.CHECKBOX,
            "Problem Identification",
            "Select all issues you're experiencing at your school.",
        ),
        StepDefinition(
            "4",
            "/school-admin/step/4",
            StepType.RANKING,
            "Priority Ranking",
            "Rank the issues you selected from most disruptive (top) to least disruptive (bottom).",
        ),
        StepDefinition(
            "5",
            "/school-admin/step/5",
            StepType.CHECKBOX,
            "Past Solutions",
            "What has your school already tried to manage student phone use?",
        ),
        StepDefinition(
            "6",
            "/school-admin/step/6",
            StepType.FORM,
            "Solution Effectiveness",
            "For each solution you tried, how well did it work?",
        ),
        StepDefinition(
            "7",
            "/school-admin/step/7",
            StepType.VOICE,
            "Barriers & Requirements",
            "What would make it hard to implement a new phone solution at your school?",
            has_voice=True,
        ),
        StepDefinition(
            "8",
            "/school-admin/step/8",
            StepType.FORM,
            "Enforcement Dynamics",
            "Help us understand where enforcement challenges come from and how teachers experience it.",
        ),
        StepDefinition(
            "9",
            "/school-admin/step/9",
            StepType.VOICE,
            "Your Ideal Solution",
            "Forget what's been tried before. If you could wave a magic wand, what would the perfect "
            "phone solution look like for your school?",
            has_voice=True,
        ),
        StepDefinition(
            "10",
            "/school-admin/step/10",
            StepType.FORM,
            "School Profile",
            "Tell us about your school.",
        ),
        StepDefinition(
            "11",
            "/school-admin/step/11",
            StepType.FORM,
            "Current Policy",
            "What is your school's current phone policy?",
        ),
        StepDefinition(
            "12",
            "/school-admin/step/12",
            StepType.CHOICE,
            "Budget",
            "What price range per student device would your school consider?",
        ),
        StepDefinition(
            "13",
            "/school-admin/step/13",
            StepType.TEXT,
            "Decision Process",
            "Who makes decisions about phone policies and technology purchases at your school?",
        ),
        StepDefinition(
            "14",
            "/school-admin/step/14",
            StepType.CHOICE,
            "Pilot Interest",
            "Would your school be interested in learning more or piloting a solution?",
        ),
        StepDefinition(
            "15",
            "/school-admin/step/15",
            StepType.FORM,
            "Schedule a Call",
            "Would you be open to a brief call to discuss your school's challenges?",
        ),
        StepDefinition(
            "16",
            "/school-admin/step/16",
            StepType.TEXT,
            "Anything Else?",
            "Is there anything else about student phone use you'd like us to know?",
        ),
        StepDefinition(
            "thank-you",
            "/school-admin/thank-you",
            StepType.THANK_YOU,
            "Thank You",
            "Your insights will directly shape how we support schools.",
        ),
    ]
)

SCHOOL_ISSUES_OPTIONS = _options(
    ("distracted-class", "Students constantly distracted in class"),
    ("cyberbullying", "Cyberbullying among students"),
    ("inappropriate-content", "Inappropriate content accessed on campus"),
    ("recording", "Students recording teachers or peers without consent"),
    ("cheating", "Cheating using devices"),
    ("mental-health", "Mental health concerns linked to phone/social media use"),
    ("no-socializing", "Students on phones during breaks instead of socializing"),
    ("parent-complaints", "Parent complaints about phone-related incidents"),
    ("parent-undermining", "Parents undermining school phone policies"),
    ("parent-pushback", "Parent pushback when phones are confiscated"),
    ("theft-damage", "Theft or damage of expensive devices"),
    ("missing-instruction", "Students missing instruction due to phone use"),
    ("staff-conflict", "Conflict between staff and students when enforcing rules"),
    ("phone-anxiety", "Students visibly anxious or unable to focus without their phone"),
    ("legal-liability", "Legal or liability concerns (recordings, privacy, incidents)"),
)

SOLUTIONS_TRIED_OPTIONS = _options(
    ("full-ban", "School-wide phone ban (phones off / away all day)"),
    ("class-rules", "Class-by-class rules (teacher discretion)"),
    ("pouches", "Phone pouches (e.g., Yondr)"),
    ("collection", "Phone collection at door / in bins"),
    ("confiscation", "Confiscation policy (take phone, return end of day/week)"),
    ("tech-restrictions", "Technology-based restrictions (MDM, app blockers, Wi-Fi filtering)"),
    ("parent-comms", "Parent communication campaigns"),
    ("digital-citizenship", "Student education / digital citizenship programs"),
    ("incentives", "Incentive or reward systems for compliance"),
    ("no-policy", "No formal policy in place"),
)

BUDGET_OPTIONS = _options(
    ("under-100", "Under $100"),
    ("100-200", "$100 - $200"),
    ("200-300", "$200 - $300"),
    ("300-500", "$300 - $500"),
    ("500-plus", "$500+"),
    ("parent-purchased", "Would need to be parent-purchased"),
    ("grant-funding", "Would need grant funding or outside support"),
)

PILOT_INTEREST_OPTIONS = _options(
    ("yes", "Yes, definitely - I'd want to explore this"),
    ("possibly", "Possibly - tell me more"),
    ("keep-informed", "Not right now, but keep me informed"),
    ("no", "No, not interested"),
)

POLICY_OPTIONS = _options(
    ("full-ban", "Full ban - phones must be off and away the entire school day"),
    ("restricted", "Restricted - phones allowed at lunch/passing periods but not in class"),
    ("teacher-discretion", "Teacher discretion - each teacher sets their own rules"),
    ("no-policy", "No formal policy - phones are generally tolerated"),
    ("byod", "BYOD / 1:1 program - phones are part of instruction"),
)

SCHOOL_TYPE_OPTIONS = _options(
    ("public", "Public"),
    ("private", "Private"),
    ("charter", "Charter"),
    ("other", "Other"),
)

GRADE_LEVEL_OPTIONS = _options(
    ("elementary", "Elementary"),
    ("middle", "Middle School"),
    ("high", "High School"),
    ("k12", "K-12"),
    ("other", "Other"),
)

ROLE_OPTIONS = _options(
    ("principal", "Principal"),
    ("asst-principal", "Assistant Principal"),
    ("counselor", "Counselor"),
    ("it-director", "IT Director"),
    ("dean", "Dean of Students"),
    ("teacher", "Teacher"),
    ("other", "Other"),
)

CALL_INTEREST_OPTIONS = _options(
    ("yes", "Yes, happy to chat"),
    ("maybe", "Maybe later"),
    ("no", "No thanks"),
)

DISRUPTION_FREQUENCY_OPTIONS = _options(
    ("multiple-daily", "Multiple times per day"),
    ("once-daily", "About once a day"),
    ("few-weekly", "A few times per week"),
    ("rarely", "Rarely or never"),
)

ENFORCEMENT_SOURCE_OPTIONS = _options(
    ("mostly-students", "Mostly from students"),
    ("mostly-parents", "Mostly from parents"),
    ("equal-mix", "Equal mix of both"),
    ("from-staff", "More from staff/teachers reluctant to enforce"),
    ("not-much", "Not much resistance"),
)

TEACHER_CONSISTENCY_OPTIONS = _options(
    ("very-consistent", "Very consistent - all teachers enforce equally"),
    ("mostly-consistent", "Mostly consistent with a few exceptions"),
    ("inconsistent", "Inconsistent - varies significantly between teachers"),
    ("no-enforcement", "Most teachers have given up enforcing"),
)

TEACHER_SUPPORT_OPTIONS = _options(
    ("well-supported", "Well supported - admin backs them up consistently"),
    ("somewhat", "Somewhat - support is uneven"),
    ("not-supported", "Not supported - teachers feel on their own"),
    ("unsure", "Unsure / haven't assessed this"),
)


def option_values(options: Sequence[Option]) -> frozenset[str]:
    return frozenset(option.value for option in options)
