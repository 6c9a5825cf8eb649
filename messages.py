# User-facing messages, English and Finnish

def text(entry, lang, **kwargs):
    msg = entry.get(lang) or entry["en"]
    return msg.format(**kwargs) if kwargs else msg


# Prompts
CHOOSE_LANGUAGE = "Choose language / Valitse kieli: fi or en"
CHOOSE_LANGUAGE_AGAIN = "Choose your language / Valitse kieli"
WHAT_TO_DO = {
    "en": "What would you like to do?",
    "fi": "Mitä haluaisit tehdä?",
}
ASK_FULL_NAME = {
    "en": "Please enter your full name (first and last):",
    "fi": "Kirjoita koko nimesi (etu- ja sukunimi):",
}
ASK_PLUS_ONE = {
    "en": "Do you want a +1 (avec)? yes/no",
    "fi": "Haluatko avecin? kyllä/ei",
}
ASK_AVEC_NAME = {
    "en": "Enter your +1's full name (first and last), or share their contact card:",
    "fi": "Anna avecin koko nimi (etu- ja sukunimi), tai jaa hänen yhteystietonsa:",
}
ASK_AVEC_HANDLE = {
    "en": "Optional: enter your +1's @handle (or type 'skip').",
    "fi": "Valinnainen: anna avecin @tunnus (tai kirjoita 'ohita').",
}
ASK_CHANGE_AVEC = {
    "en": "Send your +1's full name, or type 'none' to remove.",
    "fi": "Lähetä avecin koko nimi tai kirjoita 'ei' poistaaksesi.",
}
YES_NO = {
    "en": ("yes", "no"),
    "fi": ("kyllä", "ei"),
}

# Validation
INVALID_FULL_NAME = {
    "en": "Enter a real first and last name (letters only).",
    "fi": "Anna oikea etu- ja sukunimi (vain kirjaimet).",
}
INVALID_YES_NO = {
    "en": "Please answer yes or no.",
    "fi": "Vastaa kyllä tai ei.",
}
INVALID_AVEC_NAME = {
    "en": "Enter a real first and last name for your +1.",
    "fi": "Anna avecille oikea etu- ja sukunimi.",
}
INVALID_CHANGE_AVEC_NAME = {
    "en": "Enter a real first and last name, or 'none' to remove.",
    "fi": "Anna oikea etu- ja sukunimi tai 'ei' poistaaksesi.",
}
INVALID_HANDLE = {
    "en": "Invalid handle. Use @name (5-32 letters/digits/_), or type 'skip'.",
    "fi": "Virheellinen tunnus. Käytä @nimi (5-32 merkkiä), tai kirjoita 'ohita'.",
}

# Registration
SIGNUP_SAVED = {
    "en": "Thanks! Saved.\nName: {name}\nAvec: {avec}\nLanguage: {language}.",
    "fi": "Kiitos! Tallennettu.\nNimi: {name}\nAvec: {avec}\nKieli: {language}.",
}
SIGNED_UP_MENU = {
    "en": "You are signed up. Choose an option:",
    "fi": "Olet ilmoittautunut. Valitse toiminto:",
}
SIGNUP_REMOVED = {
    "en": "Your signup has been removed. Send /start to sign up again.",
    "fi": "Ilmoittautuminen poistettu. Lähetä /start ilmoittautuaksesi uudelleen.",
}
START_OVER = {
    "en": "You can start over by pressing /start.",
    "fi": "Voit aloittaa alusta painamalla /start.",
}
FINISH_SIGNUP_FIRST = {
    "en": "Complete your signup first. Send /start.",
    "fi": "Viimeistele ilmoittautuminen ensin. Lähetä /start.",
}
NO_AVEC = "—"

# Admin
NOT_AUTHORIZED_COMMAND = {
    "en": "You are not authorized to use this command.",
    "fi": "Ei oikeuksia tähän komentoon.",
}
NOT_AUTHORIZED_OPTION = {
    "en": "You are not authorized to use this option.",
    "fi": "Ei oikeuksia tähän toimintoon.",
}
BROADCAST_NEEDS_REPLY = {
    "en": "Reply to the message you want to send, then type /broadcast.",
    "fi": "Vastaa viestiin jonka haluat lähettää ja kirjoita /broadcast.",
}
BROADCAST_NEEDS_REPLY_BUTTON = {
    "en": "Reply to the message you want to send, then tap Broadcast.",
    "fi": "Vastaa viestiin jonka haluat lähettää ja paina Lähetä kaikille.",
}
BROADCAST_DONE = {
    "en": "Broadcast done. Sent: {sent}, failed: {failed}",
    "fi": "Lähetys valmis. Onnistui: {sent}, epäonnistui: {failed}",
}
EXPORT_READY = {
    "en": "RSVP export ready",
    "fi": "RSVP-vienti valmis",
}
WHOAMI = "UserId: {user_id}\nChatId: {chat_id}\nUsername: {username}"
GROUPADMINS_NOT_AUTHORIZED = "Not authorized."
GROUPADMINS_USAGE = "Usage:\n/groupadmins list\n/groupadmins add <userId>\n/groupadmins remove <userId>"
GROUPADMINS_USAGE_CHANGE = "Usage: /groupadmins add <userId> | /groupadmins remove <userId>"
GROUPADMINS_INVALID = "Invalid syntax. See /groupadmins list|add|remove"
GROUPADMINS_EMPTY = "(empty)"
GROUPADMINS_ADDED = "Added"
GROUPADMINS_ALREADY_PRESENT = "Already present"
GROUPADMINS_REMOVED = "Removed"
GROUPADMINS_NOT_FOUND = "Not found"

# Info
PARTY_INFO_UNAVAILABLE = {
    "en": "Party info is not available.",
    "fi": "Juhlatietoja ei ole saatavilla.",
}

# Command menu
DESC_START = "Sign up or show your signup"
DESC_AVEC = "Change your +1"
DESC_REMOVEME = "Remove your signup"
DESC_INFO = "Show party info"
DESC_EXPORT = "Export guest list (admins)"
DESC_BROADCAST = "Broadcast a replied-to message (admins)"


# Menu labels
def action_labels(lang):
    if lang == "fi":
        return "Ilmoittaudu", "Tapahtuman tiedot"
    return "Sign up", "Party info"


def completed_menu_labels(lang):
    if lang == "fi":
        return "Vaihda avecin nimi", "Peru ilmoittautuminen"
    return "Change +1 name", "Remove signup"


def export_label(lang):
    return "Vie CSV" if lang == "fi" else "Export CSV"


def broadcast_label(lang):
    return "Lähetä kaikille" if lang == "fi" else "Broadcast"


def _matches(value, *choices):
    value = (value or "").strip().lower()
    return any(value == choice.lower() for choice in choices)


def is_action_sign_up(lang, value):
    return _matches(value, action_labels(lang)[0])


def is_action_party_info(lang, value):
    return _matches(value, action_labels(lang)[1], "/info")


def is_change_avec_command(lang, value):
    if lang == "fi":
        return _matches(value, "Vaihda avecin nimi", "Vaihda avec", "/avec")
    return _matches(value, "Change +1 name", "Change +1", "/avec")


def is_remove_signup_command(lang, value):
    if lang == "fi":
        return _matches(value, "Peru ilmoittautuminen", "/removeme", "/signout")
    return _matches(value, "Remove signup", "/removeme", "/signout")


def is_export_command(lang, value):
    return _matches(value, "/export", export_label(lang))


def is_broadcast_command(lang, value):
    return _matches(value, "/broadcast", broadcast_label(lang))
