"""Starter decks for new accounts and for records that sanitize to nothing."""
from __future__ import annotations

import re
from typing import Optional

from echolingo.schemas.records import (
    SentenceItem,
    SpeechProfile,
    UserDataRecord,
    VocabularyGloss,
    VocabularyItem,
)
from echolingo.utils.timestamps import format_timestamp

# (word, meaning, tags)
ENGLISH_SEED: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("abandon", "放棄", ("verb", "core")),
    ("accurate", "準確的", ("adjective", "core")),
    ("acquire", "獲得", ("verb", "core")),
    ("adapt", "適應", ("verb", "core")),
    ("agenda", "議程", ("noun", "work")),
    ("allocate", "分配", ("verb", "work")),
    ("anticipate", "預期", ("verb", "core")),
    ("budget", "預算", ("noun", "economy")),
    ("candidate", "候選人", ("noun", "news")),
    ("climate", "氣候", ("noun", "weather")),
    ("collapse", "倒塌；崩潰", ("verb", "news")),
    ("commute", "通勤", ("verb", "daily")),
    ("consensus", "共識", ("noun", "news")),
    ("curious", "好奇的", ("adjective", "daily")),
    ("deadline", "截止期限", ("noun", "work")),
    ("decline", "下降；婉拒", ("verb", "economy")),
    ("delegate", "代表；委派", ("noun", "work")),
    ("economy", "經濟", ("noun", "economy")),
    ("efficient", "有效率的", ("adjective", "work")),
    ("emerge", "出現", ("verb", "news")),
    ("forecast", "預報", ("noun", "weather")),
    ("genuine", "真誠的", ("adjective", "daily")),
    ("inflation", "通貨膨脹", ("noun", "economy")),
    ("itinerary", "行程", ("noun", "travel")),
    ("negotiate", "談判", ("verb", "work")),
    ("passport", "護照", ("noun", "travel")),
    ("reluctant", "不情願的", ("adjective", "core")),
    ("souvenir", "紀念品", ("noun", "travel")),
    ("sustainable", "可持續的", ("adjective", "news")),
    ("vocabulary", "字彙", ("noun", "study")),
)

# (sentence, romaji, meaning, tags, glosses)
JAPANESE_SEED: tuple[tuple[str, str, str, tuple[str, ...], tuple[tuple[str, str], ...]], ...] = (
    (
        "今日はとても暑いですね。",
        "kyou wa totemo atsui desu ne",
        "今天真熱呢。",
        ("daily", "weather"),
        (("今日", "今天"), ("暑い", "熱")),
    ),
    (
        "駅までどうやって行けばいいですか。",
        "eki made dou yatte ikeba ii desu ka",
        "要怎麼去車站？",
        ("travel",),
        (("駅", "車站"),),
    ),
    (
        "明日の天気予報を確認しました。",
        "ashita no tenki yohou wo kakunin shimashita",
        "我確認了明天的天氣預報。",
        ("weather",),
        (("天気予報", "天氣預報"), ("確認", "確認")),
    ),
    (
        "毎朝コーヒーを飲んでから出かけます。",
        "maiasa koohii wo nonde kara dekakemasu",
        "我每天早上喝完咖啡才出門。",
        ("daily",),
        (("毎朝", "每天早上"), ("出かける", "出門")),
    ),
    (
        "この本は図書館で借りました。",
        "kono hon wa toshokan de karimashita",
        "這本書是在圖書館借的。",
        ("study",),
        (("図書館", "圖書館"), ("借りる", "借")),
    ),
    (
        "会議は午後三時に始まります。",
        "kaigi wa gogo sanji ni hajimarimasu",
        "會議下午三點開始。",
        ("work",),
        (("会議", "會議"), ("午後", "下午")),
    ),
    (
        "空港で友達を迎えに行きます。",
        "kuukou de tomodachi wo mukae ni ikimasu",
        "我要去機場接朋友。",
        ("travel",),
        (("空港", "機場"), ("迎える", "迎接")),
    ),
    (
        "週末は家族と旅行に行く予定です。",
        "shuumatsu wa kazoku to ryokou ni iku yotei desu",
        "週末打算和家人去旅行。",
        ("travel", "daily"),
        (("週末", "週末"), ("予定", "預定")),
    ),
    (
        "日本語の勉強を毎日続けています。",
        "nihongo no benkyou wo mainichi tsuzukete imasu",
        "我每天持續學習日語。",
        ("study",),
        (("勉強", "學習"), ("続ける", "持續")),
    ),
    (
        "株式市場は今日大きく下がりました。",
        "kabushiki shijou wa kyou ookiku sagarimashita",
        "股市今天大幅下跌。",
        ("news", "economy"),
        (("株式市場", "股市"),),
    ),
    (
        "台風が週末に接近する見込みです。",
        "taifuu ga shuumatsu ni sekkin suru mikomi desu",
        "颱風預計週末接近。",
        ("news", "weather"),
        (("台風", "颱風"), ("接近", "接近")),
    ),
    (
        "すみません、もう一度言ってください。",
        "sumimasen, mou ichido itte kudasai",
        "不好意思，請再說一次。",
        ("daily",),
        (("もう一度", "再一次"),),
    ),
)

_PLACEHOLDER_WORD = re.compile(r"^sampleword\d+", re.IGNORECASE)
PLACEHOLDER_THRESHOLD = 20


def generate_vocabulary_seed(count: Optional[int] = None) -> list[VocabularyItem]:
    """Starter vocabulary with deterministic ``en-seed-N`` ids."""
    entries = ENGLISH_SEED if count is None else ENGLISH_SEED[: max(count, 0)]
    return [
        VocabularyItem(
            id=f"en-seed-{index}",
            word=word,
            meaning=meaning,
            tags=list(tags),
        )
        for index, (word, meaning, tags) in enumerate(entries, start=1)
    ]


def generate_sentence_seed(count: Optional[int] = None) -> list[SentenceItem]:
    """Starter sentences with deterministic ``ja-seed-N`` ids."""
    entries = JAPANESE_SEED if count is None else JAPANESE_SEED[: max(count, 0)]
    return [
        SentenceItem(
            id=f"ja-seed-{index}",
            sentence=sentence,
            romanization=romaji,
            meaning=meaning,
            tags=list(tags),
            glosses=[VocabularyGloss(word=word, meaning=gloss) for word, gloss in glosses],
        )
        for index, (sentence, romaji, meaning, tags, glosses) in enumerate(entries, start=1)
    ]


def create_initial_user_data() -> UserDataRecord:
    """Fresh record for a new account."""
    return UserDataRecord(
        vocabulary=generate_vocabulary_seed(),
        sentences=generate_sentence_seed(),
        speech=SpeechProfile(),
        theme="light",
        updated_at=format_timestamp(),
    )


def is_placeholder_seed(record: UserDataRecord) -> bool:
    """Detect the ``sampleword<N>`` filler older databases were seeded with."""
    filler = sum(1 for item in record.vocabulary if _PLACEHOLDER_WORD.match(item.word))
    return filler >= PLACEHOLDER_THRESHOLD
