"""Static catalog of listening passages, keyed by CEFR level."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from .errors import ExerciseNotFound, LevelLocked
from .schemas import Exercise

CEFR_ORDER: List[str] = ["A1", "A2", "B1", "B2", "C1", "C2"]


def _ex(id: str, title: str, text: str) -> Exercise:
    return Exercise(id=id, title=title, text=text, question_count=10)


EXERCISES_BY_LEVEL: Dict[str, List[Exercise]] = {
    "A1": [
        _ex(
            "a1-1",
            "My Name and My Pet",
            "Hello. I am Tom. I am ten years old. I have a dog. The dog is brown and his name is Max. "
            "I like my dog very much. I play with my dog every day after school. We run in the garden. "
            "Sometimes we go to the park. Max likes to play with a ball. I give him food and water every morning. "
            "My mum says Max is a good dog. I am happy with my pet.",
        ),
        _ex(
            "a1-2",
            "At School",
            "I am Anna. I go to school from Monday to Friday. My school is big and I like it. I have a teacher. "
            "Her name is Mrs Green. She is very nice. I like English. We read and write in class. I have a friend. "
            "His name is Leo. We sit together. We play at break time. After school I go home. I do my homework. "
            "Then I have dinner with my family.",
        ),
        _ex(
            "a1-3",
            "My Family",
            "This is my family. I have a mum and a dad. My mum works at home. My dad goes to work by car. "
            "I have a brother. His name is Jack. He is older than me. I have a sister. Her name is Emma. "
            "She is younger than me. We live in a small house. The house has a garden. We have a cat. "
            "The cat is black and white. We all like our cat. We eat dinner together every day.",
        ),
        _ex(
            "a1-4",
            "The Weather",
            "Today it is sunny. I like sunny days. I go to the park in the morning. I play with my ball. "
            "I meet my friends there. We run and play. Then I go home for lunch. Tomorrow it will be rainy. "
            "I will not go to the park. I will stay at home. I will read a book. Maybe I will watch TV too. "
            "My mum will make hot chocolate. I like rainy days at home.",
        ),
    ],
    "A2": [
        _ex(
            "a2-1",
            "Sarah's Week",
            "Hi! My name is Sarah. I work in a shop in the town centre. I start at nine in the morning and I finish "
            "at five in the afternoon. I go to work by bus every day. The bus stop is near my house. On Saturday I "
            "usually go to the market. I buy fruit, vegetables and bread there. Sometimes I meet my sister at the "
            "market. On Sunday I stay at home. I read a book or I watch TV. I also clean my flat and cook for the "
            "week. I like my routine.",
        ),
        _ex(
            "a2-2",
            "At the Café",
            "Yesterday I went to a café with my friend. We wanted to talk and relax. We had coffee and cake. "
            "The café was nice and quiet. We sat by the window. We talked for two hours. We talked about work and "
            "about our holidays. Then we went for a walk in the park. The weather was good. I went home at six. "
            "I had a very nice afternoon.",
        ),
        _ex(
            "a2-3",
            "Shopping",
            "I need to buy some things today. I need milk, eggs and bread. I also want to buy a new shirt for work. "
            "The supermarket is near my house. I usually walk there. It takes about ten minutes. I like to go in "
            "the morning when it is quiet. The clothes shop is in the town centre. I go there by bus. The bus is "
            "cheap and fast. I will go to the supermarket first and then to the town centre.",
        ),
        _ex(
            "a2-4",
            "Weekend Plans",
            "Next weekend I am going to visit my grandparents. They live in a small town about two hours away. "
            "I will take the train on Saturday morning. I will stay until Sunday evening. My grandmother will cook "
            "my favourite food. She always makes a big lunch. I am very excited. I have not seen them for three "
            "months. I will tell them about my new job and my new flat.",
        ),
    ],
    "B1": [
        _ex(
            "b1-1",
            "A Problem at the Airport",
            "Last month I flew to Madrid for a meeting. I arrived at the airport two hours early because I was "
            "worried about traffic. When I got there, I saw on the screen that my flight was delayed by three hours "
            "because of a technical problem with the plane. I was tired and a bit angry. I went to a café, had a "
            "coffee and read my emails. Then I met another passenger who was also going to Madrid. We talked for a "
            "while and in the end we sat together on the plane. The delay was long but the flight was fine.",
        ),
        _ex(
            "b1-2",
            "A Lost Bag",
            "Last week I was on a train to London. When I got off, I left my bag on the seat. The bag had my laptop "
            "and my keys inside. I was very worried. I went to the lost property office at the station. A woman "
            "there was very helpful. She took my name and phone number. Two days later she called me. They had "
            "found my bag. I went back to the station and collected it. Everything was still inside. I was very "
            "relieved.",
        ),
        _ex(
            "b1-3",
            "A Good Book",
            "I love reading. Last month I read a book about a man who travels around the world. The book was long "
            "but very interesting. The man visited twenty countries. He had many adventures. Sometimes he was in "
            "danger but he always found a solution. I could not stop reading. I finished the book in three days. "
            "I have already bought the next book by the same writer. I will start it tonight.",
        ),
        _ex(
            "b1-4",
            "Moving House",
            "Next month I am moving to a new flat. The new flat is bigger and it has a garden. I am happy but I am "
            "also a bit sad. I have lived in my current flat for five years. I have many good memories here. "
            "My friends live nearby. In the new area I will not know anyone at first. But the new flat is near my "
            "office so I will not need to use the car. I will save time and money. I think it is the right decision.",
        ),
    ],
    "B2": [
        _ex(
            "b2-1",
            "Working from Home: Pros and Cons",
            "Over the past few years, remote work has become widespread, and many companies have adopted hybrid or "
            "fully remote models. Employees often report that they appreciate the flexibility and the lack of a "
            "daily commute. However, working from home also has drawbacks. It can be difficult to separate work "
            "from personal life, and some people end up working longer hours than they did in the office. "
            "In addition, isolation can affect well-being. Experts suggest that employers should offer clear "
            "guidelines, regular video calls, and opportunities for team building so that remote workers feel "
            "connected and supported.",
        ),
        _ex(
            "b2-2",
            "Healthy Lifestyle",
            "More and more people are trying to lead a healthier life. This includes eating a balanced diet, doing "
            "regular exercise, and getting enough sleep. Nevertheless, busy schedules often make it hard to stick "
            "to these habits. Some people find it useful to plan their meals in advance or to exercise at the same "
            "time every day. Others join a gym or a sports club so that they feel more motivated. Research shows "
            "that even small changes can make a significant difference to both physical and mental health over time.",
        ),
        _ex(
            "b2-3",
            "Travel and Culture",
            "Travelling to another country can be a great way to learn about different cultures and to improve "
            "your language skills. Before you go, it is worth reading about the local customs and perhaps learning "
            "a few basic phrases in the language. When you are there, try to talk to local people and to try local "
            "food. You might also visit museums, markets, or places that are not in the guidebooks. Many people "
            "find that they return home with a better understanding of the world and of themselves.",
        ),
        _ex(
            "b2-4",
            "Social Media",
            "Social media has changed the way we communicate and share information. On the one hand, it allows us "
            "to stay in touch with friends and family who live far away, and it can be a useful tool for work and "
            "learning. On the other hand, spending too much time online can lead to stress, comparison with "
            "others, and less time for face-to-face contact. It is important to set limits and to be aware of how "
            "social media affects your mood. Many experts recommend turning off notifications or having "
            "screen-free time before bed.",
        ),
    ],
    "C1": [
        _ex(
            "c1-1",
            "Climate Change: Mitigation and Adaptation",
            "Climate change presents unprecedented challenges for governments, businesses, and communities across "
            "the globe. Scientists agree that two types of response are necessary: mitigation and adaptation. "
            "Mitigation involves reducing greenhouse gas emissions, for example by shifting to renewable energy and "
            "improving energy efficiency. Adaptation, on the other hand, refers to adjusting to the impacts that "
            "are already occurring or are expected, such as rising sea levels, more frequent droughts, and extreme "
            "weather events. Vulnerable regions, including many developing countries, often have fewer resources "
            "to adapt, which raises questions of fairness and international cooperation. Policymakers are "
            "therefore under pressure to combine emission cuts with support for adaptation, while also ensuring "
            "that the transition to a low-carbon economy does not leave certain groups behind.",
        ),
        _ex(
            "c1-2",
            "Education and Technology",
            "The integration of technology into education has accelerated in recent years, particularly with the "
            "rise of online learning platforms and digital tools. While this has created new opportunities for "
            "access and flexibility, it has also highlighted existing inequalities. Students without reliable "
            "internet or suitable devices may fall behind. Furthermore, there is ongoing debate about the "
            "effectiveness of screen-based learning compared to traditional classroom interaction. Educators are "
            "increasingly expected to combine both approaches and to develop digital literacy among students, "
            "while also addressing concerns about screen time and the need for critical thinking in an age of "
            "abundant information.",
        ),
        _ex(
            "c1-3",
            "Cities and Sustainability",
            "Urbanisation continues to shape the way we live, with more than half of the world's population now "
            "living in cities. This trend brings both opportunities and challenges. Cities can be engines of "
            "economic growth and innovation, but they also face problems such as congestion, pollution, and "
            "unequal access to housing and services. Sustainable urban planning aims to address these issues "
            "through better public transport, green spaces, and energy-efficient buildings. Success depends on "
            "cooperation between local authorities, businesses, and citizens, as well as on long-term investment "
            "in infrastructure that can cope with a growing population.",
        ),
        _ex(
            "c1-4",
            "Technology and Privacy",
            "The amount of personal data collected by companies and governments has grown enormously, raising "
            "serious questions about privacy and consent. While data can be used to improve services and to "
            "personalise user experiences, it can also be used for surveillance, targeted advertising, or "
            "discrimination. Laws such as the GDPR in Europe have tried to strengthen individuals' rights and to "
            "impose obligations on those who collect and process data. Nevertheless, technology evolves quickly "
            "and regulations often struggle to keep up. Many argue that a balance must be found between innovation "
            "and the protection of fundamental rights, and that users should be better informed about how their "
            "data is used.",
        ),
    ],
    "C2": [
        _ex(
            "c2-1",
            "Ethics, Accountability, and Artificial Intelligence",
            "The rapid proliferation of artificial intelligence has triggered intense debate about ethical "
            "boundaries, accountability, and the role of regulation. Although automation can bring significant "
            "benefits in efficiency and innovation, it also raises serious concerns. These include algorithmic "
            "bias, which can reinforce existing inequalities; threats to privacy and data protection; and the "
            "potential misuse of AI in surveillance, disinformation, or decision-making that affects people's "
            "lives. In response, a growing number of stakeholders, from researchers and industry leaders to civil "
            "society groups, are calling for robust regulatory frameworks that can keep pace with technological "
            "change. Such frameworks, they argue, should not only address current risks but also remain flexible "
            "enough to adapt to future developments, while at the same time safeguarding fundamental rights and "
            "ensuring that those who develop or deploy AI systems can be held accountable when things go wrong.",
        ),
        _ex(
            "c2-2",
            "Globalisation and the Economy",
            "Globalisation has led to an unprecedented interconnectedness of markets, labour, and capital across "
            "national borders. Proponents argue that it has lifted millions out of poverty and has allowed for the "
            "efficient allocation of resources. Critics, however, point to rising inequality within and between "
            "countries, the erosion of local industries, and the vulnerability of supply chains to shocks, as "
            "evidenced by recent disruptions. Moreover, the environmental footprint of global trade, including "
            "emissions from transport and the exploitation of natural resources, has come under scrutiny. "
            "Policymakers are thus faced with the challenge of fostering economic growth while mitigating negative "
            "social and environmental effects, and of ensuring that the benefits of globalisation are more widely "
            "distributed.",
        ),
        _ex(
            "c2-3",
            "Science, Evidence, and Public Policy",
            "The relationship between scientific evidence and public policy has long been a subject of debate. "
            "In an ideal scenario, policy decisions would be informed by the best available research and would be "
            "revised as new evidence emerges. In practice, however, political considerations, economic interests, "
            "and public opinion often influence, and sometimes distort, the way evidence is interpreted and used. "
            "Furthermore, the communication of science to the public is not straightforward: findings can be "
            "oversimplified, taken out of context, or deliberately misrepresented. Strengthening the role of "
            "independent scientific advice and improving science literacy among both policymakers and the public "
            "are frequently cited as necessary steps if policy is to respond effectively to complex challenges "
            "such as climate change or public health crises.",
        ),
        _ex(
            "c2-4",
            "Democracy and Digital Media",
            "The spread of digital media has transformed how citizens access information and participate in "
            "democratic debate. While it has the potential to increase transparency and to give a voice to "
            "previously marginalised groups, it has also created new vulnerabilities. Misinformation and "
            "disinformation can spread rapidly, and echo chambers can reinforce polarisation. The role of "
            "traditional media as gatekeepers has been weakened, and the business models of many platforms depend "
            "on engagement rather than on accuracy. Consequently, there are growing calls for greater "
            "accountability of tech companies, for stronger regulation of political advertising, and for "
            "initiatives to promote media literacy so that citizens can critically evaluate the information they "
            "encounter.",
        ),
    ],
}


def normalize_level(level: Optional[str]) -> Optional[str]:
    if not level:
        return None
    level = level.strip().upper()
    return level if level in CEFR_ORDER else None


def is_locked(level: str, learner_level: Optional[str]) -> bool:
    """Levels above the learner's own are locked; with no learner level nothing is."""
    learner = normalize_level(learner_level)
    if learner is None:
        return False
    return CEFR_ORDER.index(level) > CEFR_ORDER.index(learner)


def level_options(learner_level: Optional[str]) -> List[Dict[str, object]]:
    return [{"level": lvl, "locked": is_locked(lvl, learner_level)} for lvl in CEFR_ORDER]


def initial_level(learner_level: Optional[str], default: str = "B1") -> str:
    return normalize_level(learner_level) or normalize_level(default) or "B1"


def exercises_for(level: str, learner_level: Optional[str] = None) -> List[Exercise]:
    lvl = normalize_level(level)
    if lvl is None:
        raise ExerciseNotFound(f"Unknown CEFR level: {level}")
    if is_locked(lvl, learner_level):
        raise LevelLocked(f"Level {lvl} is above the learner level {learner_level}")
    return list(EXERCISES_BY_LEVEL[lvl])


def get_exercise(level: str, exercise_id: str) -> Exercise:
    for ex in EXERCISES_BY_LEVEL.get(level, []):
        if ex.id == exercise_id:
            return ex
    raise ExerciseNotFound(f"No exercise {exercise_id!r} at level {level}")


def find_exercise(exercise_id: str) -> Tuple[str, Exercise]:
    for level, exercises in EXERCISES_BY_LEVEL.items():
        for ex in exercises:
            if ex.id == exercise_id:
                return level, ex
    raise ExerciseNotFound(f"No exercise {exercise_id!r}")


def find_by_title(title: Optional[str]) -> Optional[Tuple[str, Exercise]]:
    # Titles are the only key that survives between sessions
    if not title:
        return None
    for level, exercises in EXERCISES_BY_LEVEL.items():
        for ex in exercises:
            if ex.title == title:
                return level, ex
    return None
