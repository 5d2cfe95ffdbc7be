"""Transactional email templates.

Every builder returns an `EmailContent` carrying the subject, the HTML body, a plain
text alternative and the email kind used as the Resend `type` tag. Values coming from
users (names, gift messages) are HTML escaped.
"""

from html import escape
from typing import List, Optional

from narra_lambda.notifications.model import EmailContent

SUPPORT_EMAIL = "hola@narra.mx"
LOGO_URL = "https://narra.mx/logo-horizontal.png"
AUTOMATED_FOOTER = "Correo automático de Narra • Por favor no respondas"
DEFAULT_AUTHOR_LABEL = "tu autor/a en Narra"


def render_layout(
    title: str,
    heading: str,
    paragraphs: List[str],
    badge: Optional[str] = None,
    action_label: Optional[str] = None,
    action_url: Optional[str] = None,
    highlight: Optional[str] = None,
    note: Optional[str] = None,
    footer: str = AUTOMATED_FOOTER,
) -> str:
    """Render the branded HTML shell shared by every Narra email.

    Args:
        title (str): Document title.
        heading (str): Main heading inside the header band.
        paragraphs (List[str]): Body paragraphs. Already escaped HTML.
        badge (Optional[str]): Small label above the heading.
        action_label (Optional[str]): Call to action button text.
        action_url (Optional[str]): Call to action URL.
        highlight (Optional[str]): Boxed content (PIN, quoted gift message).
        note (Optional[str]): Dashed note rendered after the body.
        footer (str): Footer line.

    Returns:
        The HTML document.
    """
    blocks = [
        f'<p style="margin:0 0 20px 0;font-size:17px;line-height:1.65;color:#374151;">{p}</p>'
        for p in paragraphs
    ]
    if highlight:
        blocks.append(
            '<div style="text-align:center;margin:24px 0;">'
            '<div style="display:inline-block;border-radius:20px;background:#0f172a;color:#ffffff;'
            'padding:18px 28px;font-size:22px;font-weight:800;letter-spacing:0.08em;">'
            f"{highlight}</div></div>"
        )
    if action_label and action_url:
        blocks.append(
            '<div style="text-align:center;margin:32px 0;">'
            f'<a href="{escape(action_url, quote=True)}" style="display:inline-block;'
            "background:linear-gradient(135deg,#4DB3A8 0%,#38827A 100%);color:#ffffff;"
            'text-decoration:none;padding:16px 40px;border-radius:14px;font-weight:700;">'
            f"{action_label}</a></div>"
        )
    if note:
        blocks.append(
            '<div style="background:#f9fafb;border:2px dashed #e5e7eb;border-radius:12px;'
            f'padding:18px;"><p style="margin:0;font-size:13px;color:#6b7280;">{note}</p></div>'
        )
    badge_html = (
        '<p style="margin:0 0 16px 0;font-size:14px;color:#ffffff;letter-spacing:0.08em;'
        f'text-transform:uppercase;font-weight:600;">{badge}</p>'
        if badge
        else ""
    )
    body = "\n".join(blocks)
    return f"""<!DOCTYPE html>
<html lang="es">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <meta name="color-scheme" content="light only" />
    <title>{title}</title>
  </head>
  <body style="margin:0;padding:0;background:#fdfbf7;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Arial,sans-serif;color:#1f2937;">
    <table role="presentation" cellpadding="0" cellspacing="0" width="100%" style="max-width:660px;margin:40px auto;padding:0 20px;">
      <tr>
        <td>
          <div style="text-align:center;margin-bottom:32px;">
            <img src="{LOGO_URL}" alt="Narra" style="height:36px;width:auto;" />
          </div>
          <div style="background:#ffffff;border-radius:24px;overflow:hidden;">
            <div style="background:linear-gradient(135deg,#4DB3A8 0%,#38827A 100%);padding:40px 36px;text-align:center;">
              {badge_html}
              <h1 style="font-size:30px;line-height:1.2;margin:0;font-weight:800;color:#ffffff;">{heading}</h1>
            </div>
            <div style="padding:40px 36px;">
{body}
            </div>
            <div style="background:#fafaf9;padding:28px 36px;border-top:1px solid #e7e5e4;">
              <p style="margin:0;font-size:12px;color:#a8a29e;text-align:center;">{footer}</p>
            </div>
          </div>
        </td>
      </tr>
    </table>
  </body>
</html>"""


# ----------------------------------------------------------
# Author authentication
# ----------------------------------------------------------


def login_pin_email(email: str, pin: str) -> EmailContent:
    html = render_layout(
        title="Tu PIN para entrar a Narra",
        badge="🔐 PIN de acceso",
        heading="¡Hola!",
        paragraphs=[
            "Usa este PIN de 6 dígitos para entrar a Narra. "
            "Escríbelo en la pantalla de inicio de sesión.",
            "Tienes 5 intentos. Después de 3 intentos fallidos pide un nuevo PIN. "
            "El PIN vence en 15 minutos.",
        ],
        highlight=escape(pin),
        note=f"Este PIN es solo para <strong>{escape(email)}</strong> "
        "y se invalida al generar uno nuevo.",
    )
    text = "\n".join(
        [
            "¡Hola!",
            "",
            "Usa este PIN de 6 dígitos para entrar a Narra:",
            pin,
            "",
            "Tienes hasta 5 intentos y el PIN vence en 15 minutos.",
            "Después de 3 intentos fallidos, solicita uno nuevo en la página de inicio de sesión.",
            "",
            f"Este PIN es solo para {email} y se invalida al generar uno nuevo.",
        ]
    )
    return EmailContent(
        subject="Tu PIN de acceso a Narra", html=html, text=text, tag="author-login-pin"
    )


def author_magic_link_email(email: str, magic_link: str) -> EmailContent:
    html = render_layout(
        title="Tu enlace para iniciar sesión en Narra",
        badge="✨ Enlace de acceso",
        heading="¡Hola de nuevo!",
        paragraphs=["Recibimos tu solicitud para iniciar sesión en Narra."],
        action_label="Iniciar sesión",
        action_url=magic_link,
        note=f"Este enlace es único para <strong>{escape(email)}</strong> "
        "y expira en 15 minutos por tu seguridad.",
    )
    text = "\n".join(
        [
            "¡Hola de nuevo!",
            "",
            "Recibimos tu solicitud para iniciar sesión en Narra.",
            "",
            "Haz clic en el siguiente enlace para continuar:",
            magic_link,
            "",
            f"Este enlace es único para {email} y expira en 15 minutos por tu seguridad.",
            "",
            "¿No solicitaste este enlace? Puedes ignorar este correo de forma segura.",
        ]
    )
    return EmailContent(
        subject="Tu enlace para iniciar sesión en Narra",
        html=html,
        text=text,
        tag="author-magic-link",
    )


# ----------------------------------------------------------
# Gift management
# ----------------------------------------------------------


def subscriber_welcome_email(name: str, link: str, author_name: str) -> EmailContent:
    author = author_name.strip() or DEFAULT_AUTHOR_LABEL
    html = render_layout(
        title="Accede al blog de historias de Narra",
        badge="📖 Invitación",
        heading=f"Hola {escape(name)}",
        paragraphs=[
            f"{escape(author)} te acaba de invitar a su blog privado en Narra. "
            "Usa este enlace personal para acceder."
        ],
        action_label="Leer las historias",
        action_url=link,
        note=f"Este enlace es único para ti. Si necesitas ayuda, responde directamente a "
        f"{escape(author)}.",
    )
    text = (
        f"Hola {name},\n\n"
        f"{author} te acaba de invitar a su blog privado en Narra. "
        f"Usa este enlace personal para acceder:\n\n{link}\n\n"
        f"Este enlace es único para ti. Si necesitas ayuda, responde directamente a {author}."
    )
    return EmailContent(
        subject="📖 Accede al blog de historias de Narra",
        html=html,
        text=text,
        tag="subscriber-welcome",
    )


def subscriber_link_resend_email(name: str, link: str) -> EmailContent:
    html = render_layout(
        title="Accede al blog de historias de Narra",
        badge="📖 Tu enlace",
        heading=f"Hola {escape(name)}",
        paragraphs=["Haz clic en el siguiente enlace para acceder al blog de historias en Narra."],
        action_label="Leer las historias",
        action_url=link,
    )
    text = (
        f"Hola {name},\n\n"
        f"Haz clic en el siguiente enlace para acceder al blog de historias en Narra:\n\n"
        f"{link}\n\nCorreo automático de Narra"
    )
    return EmailContent(
        subject="📖 Accede al blog de historias de Narra",
        html=html,
        text=text,
        tag="subscriber-magic-link-resend",
    )


def email_changed_by_manager_email(new_email: str) -> EmailContent:
    html = render_layout(
        title="Email actualizado",
        badge="✉️ Cuenta actualizada",
        heading="Tu email fue actualizado",
        paragraphs=[
            f"El email de tu cuenta de Narra ahora es <strong>{escape(new_email)}</strong>.",
            "A partir de ahora usa esta dirección para iniciar sesión.",
        ],
        note=f"¿No reconoces este cambio? Escríbenos a {SUPPORT_EMAIL}.",
    )
    text = (
        "Tu email en Narra ha sido actualizado\n\n"
        f"El email de tu cuenta de Narra ahora es {new_email}.\n"
        "A partir de ahora usa esta dirección para iniciar sesión.\n\n"
        f"¿No reconoces este cambio? Escríbenos a {SUPPORT_EMAIL}."
    )
    return EmailContent(
        subject="Tu email en Narra ha sido actualizado",
        html=html,
        text=text,
        tag="email-changed-by-manager",
    )


def manager_magic_link_email(email: str, magic_link: str) -> EmailContent:
    html = render_layout(
        title="Accede a tu cuenta de Narra",
        badge="🔑 Acceso",
        heading="Accede a tu cuenta",
        paragraphs=["Haz clic en el siguiente enlace para acceder a tu cuenta."],
        action_label="Entrar a Narra",
        action_url=magic_link,
        note=f"Este enlace es válido por 15 minutos y es solo para "
        f"<strong>{escape(email)}</strong>.",
    )
    text = (
        "Accede a tu cuenta de Narra\n\nHola,\n\n"
        f"Haz clic en el siguiente enlace para acceder a tu cuenta:\n\n{magic_link}\n\n"
        "Este enlace es válido por 15 minutos.\n\n"
        "Si no solicitaste este enlace, puedes ignorar este correo de forma segura.\n\n"
        "---\nCorreo automático de Narra"
    )
    return EmailContent(
        subject="Accede a tu cuenta de Narra", html=html, text=text, tag="magic-link-from-manager"
    )


# ----------------------------------------------------------
# Purchases and gifts
# ----------------------------------------------------------


def gift_later_ready_email(activation_url: str, tag: str = "gift-later-request") -> EmailContent:
    html = render_layout(
        title="Tu regalo de Narra está listo",
        badge="🎁 Regalo guardado",
        heading="Tu regalo está listo para activar",
        paragraphs=[
            "Tu compra de Narra ha sido guardada y está lista para ser activada cuando quieras.",
            "Te pediremos el nombre y el email de la persona que recibirá el regalo, "
            "y un mensaje especial opcional.",
        ],
        action_label="Activar regalo",
        action_url=activation_url,
        note="Este enlace no expira. Puedes activar el regalo en cualquier momento.",
    )
    text = (
        "Tu regalo de Narra está listo para activar\n\nHola,\n\n"
        "Tu compra de Narra ha sido guardada y está lista para ser activada cuando quieras.\n\n"
        "Cuando estés listo para regalar Narra, simplemente haz clic en este enlace:\n"
        f"{activation_url}\n\n"
        "Te pediremos:\n- Nombre del destinatario\n- Email del destinatario\n"
        "- Un mensaje especial (opcional)\n\n"
        "Una vez completado, la persona recibirá su acceso a Narra de inmediato.\n\n"
        "IMPORTANTE: Este enlace no expira. Puedes activar el regalo en cualquier momento.\n\n"
        f"¿Necesitas ayuda? Escríbenos a {SUPPORT_EMAIL}"
    )
    return EmailContent(
        subject="🎁 Tu regalo de Narra está listo para activar", html=html, text=text, tag=tag
    )


def gift_author_email(
    magic_link: str,
    buyer_name: str,
    gift_message: Optional[str],
    author_name: str,
    tag: str = "gift-later-activated-author",
) -> EmailContent:
    author = author_name.strip()
    greeting = f"Hola {author}," if author else "Hola,"
    paragraphs = [
        escape(greeting),
        f"{escape(buyer_name)} te ha regalado acceso de por vida a Narra, una plataforma "
        "para preservar y compartir tus historias con tu familia.",
    ]
    message = (gift_message or "").strip()
    html = render_layout(
        title="Te han regalado Narra",
        badge="🎁 Un regalo para ti",
        heading=f"¡{escape(buyer_name)} te ha regalado Narra!",
        paragraphs=paragraphs,
        highlight=f"“{escape(message)}”" if message else None,
        action_label="Comenzar",
        action_url=magic_link,
        note=f"¿Necesitas ayuda? Escríbenos a {SUPPORT_EMAIL}",
    )
    text = (
        f"¡{buyer_name} te ha regalado Narra!\n\n{greeting}\n\n"
        f"{buyer_name} te ha regalado acceso de por vida a Narra, una plataforma para "
        "preservar y compartir tus historias con tu familia."
    )
    if message:
        text += f'\n\n---\nMENSAJE ESPECIAL DE {buyer_name.upper()}\n\n"{message}"\n---\n'
    text += f"\n\nPara comenzar, haz clic en este enlace:\n{magic_link}\n\n"
    text += f"¿Necesitas ayuda? Escríbenos a {SUPPORT_EMAIL}"
    return EmailContent(subject="🎁 ¡Te han regalado Narra!", html=html, text=text, tag=tag)


def gift_activated_buyer_email(author_email: str, author_name: str) -> EmailContent:
    display_name = author_name.strip() or author_email
    who = display_name if display_name == author_email else f"{display_name} ({author_email})"
    html = render_layout(
        title="Regalo activado",
        badge="✅ Regalo activado",
        heading="Regalo activado exitosamente",
        paragraphs=[
            "Tu regalo de Narra ha sido activado exitosamente.",
            f"{escape(who)} ya recibió su acceso y puede comenzar a preservar sus memorias.",
            "Has regalado memorias que durarán para siempre.",
        ],
        note=f"¿Necesitas ayuda? Escríbenos a {SUPPORT_EMAIL}",
    )
    text = (
        "Regalo activado exitosamente\n\n"
        "Tu regalo de Narra ha sido activado exitosamente.\n\n"
        f"{who} ya recibió su acceso y puede comenzar a preservar sus memorias.\n\n"
        "Has regalado memorias que durarán para siempre.\n\n"
        f"¿Necesitas ayuda? Escríbenos a {SUPPORT_EMAIL}"
    )
    return EmailContent(
        subject="✅ Tu regalo de Narra ha sido activado",
        html=html,
        text=text,
        tag="gift-later-activated-buyer",
    )


def self_purchase_email(
    magic_link: str, management_url: str, author_name: str
) -> EmailContent:
    greeting = f"Hola {author_name}," if author_name else "Hola,"
    html = render_layout(
        title="Bienvenido a Narra",
        badge="🎉 Cuenta creada",
        heading="¡Bienvenido a Narra!",
        paragraphs=[escape(greeting), "Tu cuenta ha sido creada exitosamente."],
        action_label="Confirmar mi cuenta",
        action_url=magic_link,
        note=f'Portal de recuperación (guarda este enlace): <a href="{escape(management_url)}">'
        f"{escape(management_url)}</a>",
    )
    text = (
        f"{greeting}\n\nTu cuenta ha sido creada exitosamente.\n\n"
        f"Para confirmar tu cuenta y comenzar: {magic_link}\n\n"
        f"Portal de recuperación (guarda este enlace): {management_url}\n\n"
        f"¿Preguntas? {SUPPORT_EMAIL}"
    )
    return EmailContent(
        subject="¡Bienvenido a Narra! Confirma tu cuenta",
        html=html,
        text=text,
        tag="purchase-self",
    )


def gift_sent_buyer_email(author_email: str, management_url: str, author_name: str) -> EmailContent:
    display_name = author_name or author_email
    html = render_layout(
        title="Regalo enviado",
        badge="✅ Regalo enviado",
        heading="¡Tu regalo fue enviado!",
        paragraphs=[
            f"Tu regalo de Narra ha sido enviado a {escape(display_name)}.",
            "Desde el panel de gestión puedes administrar los suscriptores y ayudar a tu "
            "autor/a a acceder a su cuenta.",
        ],
        action_label="Panel de gestión",
        action_url=management_url,
        note="Guarda este email. El enlace no expira.",
    )
    text = (
        "¡Tu regalo fue enviado!\n\n"
        f"Tu regalo de Narra ha sido enviado a {display_name}.\n\n"
        f"Panel de Gestión: {management_url}\n\n"
        "Guarda este email. El enlace no expira.\n\n"
        f"¿Preguntas? {SUPPORT_EMAIL}"
    )
    return EmailContent(
        subject="✅ Regalo enviado - Panel de gestión de Narra",
        html=html,
        text=text,
        tag="purchase-gift-buyer",
    )


# ----------------------------------------------------------
# Email change
# ----------------------------------------------------------


def email_change_old_address_email(old_email: str, new_email: str, revert_link: str) -> EmailContent:
    html = render_layout(
        title="Solicitud de cambio de email",
        badge="⚠️ Cambio de email",
        heading="Solicitud de cambio de email",
        paragraphs=[
            "Se ha solicitado cambiar el email de tu cuenta de Narra.",
            f"Email actual: <strong>{escape(old_email)}</strong><br/>"
            f"Nuevo email: <strong>{escape(new_email)}</strong>",
            "IMPORTANTE: El cambio NO se realizará hasta que se confirme desde el nuevo email.",
            "Si no reconoces esta solicitud, puedes cancelarla en cualquier momento.",
        ],
        action_label="Revertir cambio",
        action_url=revert_link,
        note="Este enlace NUNCA expira. Puedes revertir el cambio en cualquier momento, "
        "incluso después de que se confirme.",
    )
    text = (
        "Solicitud de cambio de email en Narra\n\nHola,\n\n"
        "Se ha solicitado cambiar el email de tu cuenta de Narra.\n\n"
        f"Email actual: {old_email}\nNuevo email: {new_email}\n\n"
        "IMPORTANTE: El cambio NO se realizará hasta que se confirme desde el nuevo email.\n\n"
        "Si no reconoces esta solicitud, puedes cancelarla en cualquier momento usando este "
        f"enlace:\n{revert_link}\n\n"
        "Este enlace NUNCA expira. Puedes revertir el cambio en cualquier momento, incluso "
        "después de que se confirme.\n\n---\nCorreo automático de Narra"
    )
    return EmailContent(
        subject="Solicitud de cambio de email en Narra",
        html=html,
        text=text,
        tag="email-change-old",
    )


def email_change_new_address_email(new_email: str, confirm_link: str) -> EmailContent:
    html = render_layout(
        title="Confirma tu nuevo email",
        badge="✉️ Confirmación",
        heading="Confirma tu nuevo email",
        paragraphs=[
            f"Se ha solicitado usar este email (<strong>{escape(new_email)}</strong>) como el "
            "nuevo email de registro en Narra.",
            "Para completar el cambio, confirma que tienes acceso a esta dirección.",
        ],
        action_label="Confirmar email",
        action_url=confirm_link,
        note="Si no solicitaste este cambio, puedes ignorar este correo de forma segura.",
    )
    text = (
        "Confirma tu nuevo email en Narra\n\nHola,\n\n"
        f"Se ha solicitado usar este email ({new_email}) como el nuevo email de registro en "
        "Narra.\n\nPara completar el cambio, confirma que tienes acceso a esta dirección:\n"
        f"{confirm_link}\n\n"
        "El cambio se completará inmediatamente al hacer clic en el enlace.\n\n"
        "Si no solicitaste este cambio, puedes ignorar este correo de forma segura.\n\n"
        "---\nCorreo automático de Narra"
    )
    return EmailContent(
        subject="Confirma tu nuevo email en Narra",
        html=html,
        text=text,
        tag="email-change-new",
    )
