"""
Quiz catalog

The closed, versioned set of clinical questionnaires. Built once at import
and never mutated.
"""

from typing import Iterator

from ..errors import QuizNotFound
from .schema import (
    BandBasis,
    CountRule,
    Option,
    PointSumRule,
    Question,
    QuizDefinition,
    Severity,
    SeverityBand,
)


def _scale(*labels: tuple[str, int]) -> tuple[Option, ...]:
    return tuple(Option(label=label, value=value) for label, value in labels)


def _questions(texts: list[str], options: tuple[Option, ...]) -> tuple[Question, ...]:
    return tuple(
        Question(id=str(i), text=text, options=options)
        for i, text in enumerate(texts, start=1)
    )


# =============================================================================
# OPTION SCALES
# =============================================================================

SNOT22_OPTIONS = _scale(
    ("0 - Not a problem", 0),
    ("1 - Very Mild Problem", 1),
    ("2 - Moderate Problem", 2),
    ("3 - Fairly Bad Problem", 3),
    ("4 - Severe Problem", 4),
    ("5 - Problem as bad as it can be", 5),
)

NOSE_OPTIONS = _scale(
    ("0 - Not a problem", 0),
    ("1 - Very Mild", 1),
    ("2 - Moderate", 2),
    ("3 - Fairly Bad", 3),
    ("4 - Severe", 4),
)

HHIA_OPTIONS = _scale(
    ("0 - No", 0),
    ("2 - Sometimes", 2),
    ("4 - Yes", 4),
)

EPWORTH_OPTIONS = _scale(
    ("0 - Would never nod off", 0),
    ("1 - Slight chance of nodding off", 1),
    ("2 - Moderate chance of nodding off", 2),
    ("3 - High chance of nodding off", 3),
)

# DHI labels carry no embedded weight; scoring uses the option values
DHI_OPTIONS = _scale(
    ("No", 0),
    ("Sometimes", 2),
    ("Yes", 4),
)

STOP_OPTIONS = _scale(
    ("No", 0),
    ("Yes", 1),
)

TNSS_OPTIONS = _scale(
    ("NO symptoms", 0),
    ("MILD Symptoms present but easily tolerated", 1),
    ("MODERATE Symptoms present and bothersome", 2),
    ("SEVERE Symptoms present and interfere with activities of daily living and/or sleep", 3),
)


# =============================================================================
# QUIZ DEFINITIONS
# =============================================================================

SNOT22 = QuizDefinition(
    id="SNOT22",
    title="SNOT-22 Assessment",
    description="Comprehensive evaluation of sinus and nasal symptoms",
    max_score=110,
    questions=_questions(
        [
            "How often do you experience nasal congestion?",
            "How often do you experience runny nose?",
            "How often do you experience post-nasal discharge?",
            "How often do you experience thick nasal discharge?",
            "How often do you experience loss of smell/taste?",
            "How often do you experience cough?",
            "How often do you experience ear fullness?",
            "How often do you experience dizziness?",
            "How often do you experience ear pain?",
            "How often do you experience facial pain/pressure?",
            "How often do you have difficulty falling asleep?",
            "How often do you wake up at night?",
            "How often do you lack a good night's sleep?",
            "How often do you wake up tired?",
            "How often are you fatigued during the day?",
            "How often do you have reduced productivity?",
            "How often do you have reduced concentration?",
            "How often are you frustrated/restless/irritable?",
            "How often are you sad?",
            "How often are you embarrassed by your condition?",
            "How often do you avoid spending time with others?",
            "How often do you experience difficulty breathing through your nose?",
        ],
        SNOT22_OPTIONS,
    ),
    rule=PointSumRule(
        per_question_max=5,
        bands=(
            SeverityBand(
                Severity.SEVERE, 41,
                "Your score suggests severe chronic rhinitis. We recommend consulting a specialist as soon as possible.",
                "You scored in the severe range, indicating significant impact on your quality of life from nasal and sinus symptoms.",
            ),
            SeverityBand(
                Severity.MODERATE, 16,
                "Your score indicates significant chronic rhinitis, a common but treatable condition.",
                "You scored in the moderate range, suggesting your symptoms may benefit from professional evaluation and treatment.",
            ),
        ),
        normal=SeverityBand(
            Severity.NORMAL, 0,
            "You appear to have No to Mild Chronic rhinitis at this time.",
            "You scored in the normal range, indicating minimal impact from nasal and sinus symptoms.",
        ),
    ),
)

NOSE = QuizDefinition(
    id="NOSE",
    title="NOSE Scale Assessment",
    description="Nasal Obstruction Symptom Evaluation for breathing difficulties",
    max_score=20,
    questions=_questions(
        [
            "Nasal congestion or stuffiness",
            "Nasal blockage or obstruction",
            "Trouble breathing through my nose",
            "Trouble sleeping",
            "Unable to get enough air through my nose during exercise or exertion",
        ],
        NOSE_OPTIONS,
    ),
    rule=PointSumRule(
        bands=(
            SeverityBand(
                Severity.SEVERE, 75,
                "Your score suggests severe nasal obstruction. We recommend consulting a specialist as soon as possible.",
                "You scored in the severe range, indicating significant breathing difficulties through your nose.",
            ),
            SeverityBand(
                Severity.MODERATE, 50,
                "Your score indicates significant nasal obstruction, a common but treatable condition.",
                "You scored in the moderate range, suggesting noticeable nasal breathing problems that may benefit from treatment.",
            ),
            SeverityBand(
                Severity.MILD, 25,
                "Your score shows moderate symptoms. Monitoring and early care may be helpful.",
                "You scored in the mild range, indicating some nasal obstruction symptoms worth monitoring.",
            ),
        ),
        normal=SeverityBand(
            Severity.NORMAL, 0,
            "You appear to have mild or no nasal obstruction at this time.",
            "You scored in the normal range, indicating minimal nasal breathing problems.",
        ),
    ),
)

HHIA = QuizDefinition(
    id="HHIA",
    title="Hearing Handicap Inventory for Adults",
    description="Assessment of hearing difficulties and their impact on daily life",
    max_score=500,
    questions=_questions(
        [
            "Does a hearing problem cause you to feel embarrassed when meeting new people?",
            "Does a hearing problem cause you to feel frustrated when talking to members of your family?",
            "Do you have difficulty hearing when someone speaks in a whisper?",
            "Do you feel handicapped by a hearing problem?",
            "Does a hearing problem cause you difficulty when visiting friends, relatives, or neighbors?",
            "Does a hearing problem cause you to attend religious services less often than you would like?",
            "Does a hearing problem cause you to have arguments with family members?",
            "Does a hearing problem cause you difficulty when listening to TV or radio?",
            "Do you feel that any difficulty with your hearing limits or hampers your personal or social life?",
            "Does a hearing problem cause you difficulty when in a restaurant with relatives or friends?",
            "Does a hearing problem cause you to feel depressed?",
            "Does a hearing problem cause you to listen to TV or radio more loudly than others?",
            "Does a hearing problem cause you to feel nervous?",
            "Does a hearing problem cause you to visit friends, relatives, or neighbors less often than you would like?",
            "Does a hearing problem cause you to have difficulty hearing/understanding co-workers, clients, or customers?",
            "Do you feel restricted or limited by a hearing problem?",
            "Does a hearing problem cause you difficulty when listening to the radio or recordings?",
            "Does a hearing problem cause you to feel left out when you are with a group of people?",
            "Does a hearing problem cause you to be irritable?",
            "Does a hearing problem cause you to talk to family members less often than you would like?",
            "Does a hearing problem cause you difficulty when you are in a crowded store?",
            "Does a hearing problem cause you to feel isolated from others?",
            "Does a hearing problem cause you to avoid groups of people?",
            "Does a hearing problem cause you difficulty when talking on the telephone?",
            "Do you feel that a hearing problem reduces your enjoyment of life?",
        ],
        HHIA_OPTIONS,
    ),
    rule=PointSumRule(
        basis=BandBasis.SCORE,
        multiplier=5,
        bands=(
            SeverityBand(
                Severity.SEVERE, 44,
                "Your score suggests a significant hearing handicap. Please consider consulting an audiologist or ENT specialist.",
                "You scored in the severe range, indicating significant impact on daily activities due to hearing difficulties.",
            ),
            SeverityBand(
                Severity.MODERATE, 18,
                "Your score indicates a mild to moderate hearing handicap, which may impact your daily communication.",
                "You scored in the moderate range, suggesting some hearing-related challenges in social situations.",
            ),
        ),
        normal=SeverityBand(
            Severity.NORMAL, 0,
            "You appear to have no significant hearing handicap at this time.",
            "You scored in the normal range, indicating minimal impact from hearing difficulties.",
        ),
    ),
)

EPWORTH = QuizDefinition(
    id="EPWORTH",
    title="Epworth Sleepiness Scale",
    description="Measure your general level of daytime sleepiness",
    max_score=24,
    questions=_questions(
        [
            "How likely are you to doze off or fall asleep while sitting and reading?",
            "How likely are you to doze off or fall asleep while watching TV?",
            "How likely are you to doze off or fall asleep while sitting inactive in a public place?",
            "How likely are you to doze off or fall asleep as a passenger in a car for an hour without a break?",
            "How likely are you to doze off or fall asleep while lying down to rest in the afternoon?",
            "How likely are you to doze off or fall asleep while sitting and talking to someone?",
            "How likely are you to doze off or fall asleep while sitting quietly after lunch without alcohol?",
            "How likely are you to doze off or fall asleep while in a car, while stopped for a few minutes in traffic?",
        ],
        EPWORTH_OPTIONS,
    ),
    rule=PointSumRule(
        basis=BandBasis.SCORE,
        bands=(
            SeverityBand(
                Severity.SEVERE, 16,
                "Your score suggests severe daytime sleepiness. Please seek medical attention, as this could indicate a serious underlying sleep disorder.",
                "You scored in the severe range, indicating excessive daytime sleepiness that may require immediate medical attention.",
            ),
            SeverityBand(
                Severity.MODERATE, 10,
                "Your score raises concern: you may need to get more sleep, improve your sleep hygiene, or consult a doctor.",
                "You scored in the moderate range, suggesting significant daytime sleepiness that warrants further evaluation.",
            ),
            SeverityBand(
                Severity.MILD, 5,
                "Your score shows mild sleepiness. Monitor your sleep habits and stay consistent with your sleep routine.",
                "You scored in the mild range, indicating some daytime sleepiness worth monitoring.",
            ),
        ),
        normal=SeverityBand(
            Severity.NORMAL, 0,
            "You appear to have normal sleep patterns with no excessive daytime sleepiness.",
            "You scored in the normal range, indicating healthy sleep patterns and alertness during the day.",
        ),
    ),
)

DHI = QuizDefinition(
    id="DHI",
    title="Dizziness Handicap Inventory",
    description="Assessment of dizziness impact on daily activities",
    max_score=100,
    questions=_questions(
        [
            "Does looking up increase your problem?",
            "Because of your problem, do you feel frustrated?",
            "Because of your problem, do you restrict your travel for business or recreation?",
            "Does walking down the aisle of a supermarket increase your problems?",
            "Because of your problem, do you have difficulty getting into or out of bed?",
            "Does your problem significantly restrict your participation in social activities?",
            "Because of your problem, do you have difficulty reading?",
            "Does performing more ambitious activities like sports, dancing, household chores increase your problem?",
            "Because of your problem, are you afraid to leave your home without having someone accompany you?",
            "Because of your problem, have you been embarrassed in front of others?",
            "Do quick movements of your head increase your problem?",
            "Because of your problem, do you avoid heights?",
            "Does turning over in bed increase your problem?",
            "Because of your problem, is it difficult for you to do strenuous housework or yard work?",
            "Because of your problem, are you afraid people may think you are intoxicated?",
            "Because of your problem, is it difficult for you to go for a walk by yourself?",
            "Does walking down a sidewalk increase your problem?",
            "Because of your problem, is it difficult for you to concentrate?",
            "Because of your problem, is it difficult for you to walk around your house in the dark?",
            "Because of your problem, are you afraid to stay home alone?",
            "Because of your problem, do you feel handicapped?",
            "Has the problem placed stress on your relationships with members of your family or friends?",
            "Because of your problem, are you depressed?",
            "Does your problem interfere with your job or household responsibilities?",
            "Does bending over increase your problem?",
        ],
        DHI_OPTIONS,
    ),
    rule=PointSumRule(
        bands=(
            SeverityBand(
                Severity.SEVERE, 54,
                "Your score indicates severe handicap. Please consult a balance specialist.",
                "You scored in the severe range, indicating significant impact on daily activities due to dizziness and balance issues.",
            ),
            SeverityBand(
                Severity.MODERATE, 36,
                "Your score indicates moderate handicap. Consider consulting a specialist.",
                "You scored in the moderate range, suggesting noticeable impact from dizziness symptoms.",
            ),
            SeverityBand(
                Severity.MILD, 16,
                "Your score indicates mild handicap. Monitoring may be helpful.",
                "You scored in the mild range, indicating some dizziness-related difficulties worth monitoring.",
            ),
        ),
        normal=SeverityBand(
            Severity.NORMAL, 0,
            "You appear to have minimal dizziness handicap at this time.",
            "You scored in the normal range, indicating minimal impact from dizziness or balance problems.",
        ),
    ),
)

STOP = QuizDefinition(
    id="STOP",
    title="STOP-Bang Sleep Apnea Screening",
    description="Screening tool for obstructive sleep apnea risk assessment",
    max_score=8,
    questions=_questions(
        [
            "Do you Snore loudly (louder than talking or loud enough to be heard through closed doors)?",
            "Do you often feel Tired, fatigued, or sleepy during daytime?",
            "Has anyone Observed you stop breathing during your sleep?",
            "Do you have or are you being treated for high blood Pressure?",
            "Body Mass Index more than 35 kg/m²?",
            "Age over 50 years old?",
            "Neck circumference greater than 40cm?",
            "Gender: Are you male?",
        ],
        STOP_OPTIONS,
    ),
    rule=CountRule(
        bands=(
            SeverityBand(
                Severity.SEVERE, 50,
                "High Risk: You have a high risk of obstructive sleep apnea. Please consult a sleep specialist.",
                "You scored in the high-risk range for sleep apnea, indicating multiple risk factors are present.",
            ),
            SeverityBand(
                Severity.MODERATE, 30,
                "Intermediate Risk: You have an intermediate risk of obstructive sleep apnea. Consider evaluation.",
                "You scored in the intermediate-risk range, suggesting some risk factors for sleep apnea are present.",
            ),
        ),
        normal=SeverityBand(
            Severity.NORMAL, 0,
            "Low Risk: You have a low risk of obstructive sleep apnea.",
            "You scored in the low-risk range, indicating few risk factors for sleep apnea.",
        ),
    ),
)

TNSS = QuizDefinition(
    id="TNSS",
    title="Total Nasal Symptom Score",
    description="Assessment of nasal congestion and rhinitis symptoms",
    max_score=12,
    questions=_questions(
        [
            "Nasal congestion/stuffiness",
            "Runny nose",
            "Nasal itching",
            "Sneezing",
        ],
        TNSS_OPTIONS,
    ),
    rule=PointSumRule(
        basis=BandBasis.SCORE,
        bands=(
            SeverityBand(
                Severity.SEVERE, 9,
                "Your score suggests severe chronic rhinitis symptoms. We recommend consulting a specialist as soon as possible.",
                "You scored in the severe range, indicating significant impact from nasal allergy symptoms.",
            ),
            SeverityBand(
                Severity.MODERATE, 6,
                "Your score indicates moderate chronic rhinitis symptoms, a common but treatable condition.",
                "You scored in the moderate range, suggesting noticeable nasal allergy symptoms that may benefit from treatment.",
            ),
            SeverityBand(
                Severity.MILD, 1,
                "Your score shows mild chronic rhinitis symptoms. Monitoring and early care may be helpful.",
                "You scored in the mild range, indicating some nasal allergy symptoms worth monitoring.",
            ),
        ),
        normal=SeverityBand(
            Severity.NORMAL, 0,
            "You appear to have no chronic rhinitis symptoms at this time.",
            "You scored in the normal range, indicating no significant nasal allergy symptoms.",
        ),
    ),
)


class QuizCatalog:
    """
    Read-only registry of quiz definitions.

    Lookups are case-normalized since ids arrive from URL routing in
    either case.
    """

    def __init__(self, quizzes: list[QuizDefinition]):
        self._quizzes = {q.id.upper(): q for q in quizzes}

    def get(self, quiz_id: str) -> QuizDefinition:
        """
        Look up a quiz.

        Raises:
            QuizNotFound: If the id is not in the catalog
        """
        key = (quiz_id or "").strip().upper()
        quiz = self._quizzes.get(key)
        if quiz is None:
            raise QuizNotFound(quiz_id)
        return quiz

    def ids(self) -> list[str]:
        return list(self._quizzes)

    def all(self) -> list[QuizDefinition]:
        return list(self._quizzes.values())

    def __contains__(self, quiz_id: object) -> bool:
        return isinstance(quiz_id, str) and quiz_id.strip().upper() in self._quizzes

    def __iter__(self) -> Iterator[QuizDefinition]:
        return iter(self._quizzes.values())

    def __len__(self) -> int:
        return len(self._quizzes)


# Singleton
CATALOG = QuizCatalog([SNOT22, NOSE, HHIA, EPWORTH, DHI, STOP, TNSS])


def get_quiz(quiz_id: str) -> QuizDefinition:
    """Look up a quiz in the default catalog."""
    return CATALOG.get(quiz_id)
